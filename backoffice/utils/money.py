from decimal import Decimal, ROUND_DOWN, ROUND_HALF_EVEN
from typing import List, Sequence

CENT = Decimal("0.01")


def to_decimal(value) -> Decimal:
    """Число из JSON/БД -> Decimal без артефактов float."""
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def q2(value) -> Decimal:
    # банковское округление до копеек
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_EVEN)


def prorate_vat(vat, line_totals: Sequence) -> List[Decimal]:
    """
    Делит общий налог по строкам пропорционально доле суммы строки.
    Возвращает доли без округления; если все суммы нулевые - делим поровну.
    """
    vat = to_decimal(vat)
    totals = [to_decimal(t) for t in line_totals]
    if not totals:
        return []
    grand = sum(totals, Decimal("0"))
    if grand == 0:
        share = vat / len(totals)
        return [share for _ in totals]
    return [vat * t / grand for t in totals]


def split_vat(vat, line_totals: Sequence) -> List[Decimal]:
    """
    Доли налога по строкам, округлённые до копеек, в сумме ровно q2(vat).
    Лишние копейки уходят строкам с наибольшим отброшенным остатком
    (при равенстве - более ранней строке).
    """
    shares = prorate_vat(vat, line_totals)
    if not shares:
        return []
    rounded = [s.quantize(CENT, rounding=ROUND_DOWN) for s in shares]
    leftover = int((q2(vat) - sum(rounded, Decimal("0"))) / CENT)
    by_remainder = sorted(range(len(shares)), key=lambda i: shares[i] - rounded[i], reverse=True)
    for i in by_remainder[:leftover]:
        rounded[i] += CENT
    return rounded
