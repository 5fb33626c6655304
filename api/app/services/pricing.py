"""Pricing and payment status for reservations.

A reservation carries a court price (court override or club default) shared
between its players, plus optional extras sold on top (balls, drinks, rental
rackets). Each extra is split either among the players it is assigned to or,
when unassigned, among all players. Players and items are the JSON dicts
stored on the reservation row.

Nothing here moves money; it only works out who owes what and whether the
reservation counts as paid.
"""

from decimal import ROUND_HALF_UP, Decimal

from app.models.reservation import PaymentStatus

CENT = Decimal("0.01")
PADEL_PLAYERS = 4


def _money(value) -> Decimal:
    return Decimal(str(value or 0))


def _round(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def resolve_court_price(court, club) -> Decimal:
    """Court override when set and non-zero, otherwise the club default."""
    if court.price:
        return _money(court.price)
    return _money(club.default_price)


def split_court_price(total, n_players: int = PADEL_PLAYERS) -> Decimal:
    """Even per-player share of the court price, rounded to the cent."""
    if n_players <= 0:
        return Decimal("0.00")
    return _round(_money(total) / n_players)


def clean_players(players: list[dict] | None) -> list[dict]:
    """Drop placeholder players whose name is blank."""
    return [p for p in players or [] if str(p.get("name", "")).strip()]


def item_total(item: dict) -> Decimal:
    return _money(item.get("price")) * int(item.get("quantity", 1) or 0)


def extras_total(items: list[dict] | None) -> Decimal:
    return sum((item_total(i) for i in items or []), Decimal("0"))


def reservation_total(price, items: list[dict] | None) -> Decimal:
    """Court price plus every extra."""
    return _round(_money(price) + extras_total(items))


def player_share(players: list[dict], items: list[dict] | None, index: int) -> Decimal:
    """What player `index` owes: their court share plus their part of the extras.

    Items list assignees as player indices in string form ("0", "2"). An item
    with no assignees is split across all players.
    """
    if not 0 <= index < len(players):
        return Decimal("0.00")

    share = _money(players[index].get("court_price"))
    for item in items or []:
        assignees = [str(a) for a in item.get("assigned_to") or []]
        if not assignees:
            share += item_total(item) / len(players)
        elif str(index) in assignees:
            share += item_total(item) / len(assignees)

    return _round(share)


def derive_payment_status(players: list[dict] | None) -> PaymentStatus:
    """pending if nobody paid, completed if everyone did (at least one player), partial otherwise."""
    players = players or []
    paid = sum(1 for p in players if p.get("paid"))

    if players and paid == len(players):
        return PaymentStatus.COMPLETED
    if paid > 0:
        return PaymentStatus.PARTIAL
    return PaymentStatus.PENDING


def mark_all_paid(players: list[dict] | None) -> list[dict]:
    """Settle every player in one go (the desk's "charge all" action)."""
    return [{**p, "paid": True} for p in players or []]
