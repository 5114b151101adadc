# seed.py - пересоздать таблицы и залить демо-данные
from decimal import Decimal

from sqlalchemy.orm import configure_mappers

from backoffice.db import Base, engine, SessionLocal
import backoffice.models  # noqa: F401  подтягиваем все модели
from backoffice.models import Product, Client, Employee
from backoffice.utils.enums import ClientType


def reset_and_seed():
    # === RESET ===
    Base.metadata.drop_all(bind=engine)
    print("🗑 Все таблицы удалены")

    configure_mappers()
    Base.metadata.create_all(bind=engine)
    print("✅ Все таблицы пересозданы")

    db = SessionLocal()
    try:
        # --- Сотрудник ---
        cashier = Employee(first_name="Ana", last_name="Lopez")
        db.add(cashier)

        # --- Клиенты ---
        db.add_all([
            Client(client_type=ClientType.INDIVIDUAL.value, first_name="Carlos", last_name="Ruiz",
                   email="carlos@example.com"),
            Client(client_type=ClientType.BUSINESS.value, business_name="Taller Norte",
                   tax_id="TN-001", email="taller@example.com"),
        ])

        # --- Товары ---
        for i in range(1, 11):
            db.add(Product(
                name=f"Repuesto {i}",
                sku=f"SKU{i:03d}",
                stock=20,
                sale_price=Decimal(i * 10),
                is_active=True,
            ))

        db.commit()
        print("✅ Демо-данные добавлены")
    finally:
        db.close()


if __name__ == "__main__":
    reset_and_seed()
