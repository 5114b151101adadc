import secrets
import time


def make_sale_reference() -> str:
    # Референс чека: время в мс + случайный хвост
    return "SALE-{0}-{1}".format(int(time.time() * 1000), secrets.token_hex(3).upper())


def make_return_reference(sale_id: int) -> str:
    return f"RETURN-SALE-{sale_id}"
