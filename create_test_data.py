from decimal import Decimal

from sqlmodel import create_engine, Session

from local_eats.db.catalog import CookDish, FoodItem, MarginType
from local_eats.db.orders import ServiceType
from local_eats.db.people import Cook, DeliveryStaff, DeliveryStaffType, Profile
from local_eats.settings import Settings


def create_test_data():
    settings = Settings()
    engine = create_engine(settings.db_url)

    with Session(engine) as session:
        # Клиенты
        profiles = [
            Profile(user_id=1, name="Anjali Nair", mobile_number="+919800000001"),
            Profile(user_id=2, name="Rahul Menon", mobile_number="+919800000002"),
        ]
        for profile in profiles:
            session.add(profile)

        # Повара: двое в панчаяте 1, один в панчаяте 2
        cooks = [
            Cook(kitchen_name="Amma's Kitchen", mobile_number="+919811111101", panchayat_id=1),
            Cook(kitchen_name="Spice Route", mobile_number="+919811111102", panchayat_id=1),
            Cook(kitchen_name="Malabar Tiffins", mobile_number="+919811111103", panchayat_id=2),
        ]
        for cook in cooks:
            session.add(cook)

        session.commit()

        # Блюда каталога
        food_items = [
            FoodItem(
                name="Chicken Biryani",
                price=Decimal("180"),
                platform_margin_type=MarginType.PERCENT,
                platform_margin_value=Decimal("10"),
                service_type=ServiceType.HOMEMADE,
            ),
            FoodItem(
                name="Appam with Stew",
                price=Decimal("120"),
                platform_margin_type=MarginType.FIXED,
                platform_margin_value=Decimal("15"),
                service_type=ServiceType.HOMEMADE,
            ),
            FoodItem(
                name="Veg Meals",
                price=Decimal("90"),
                platform_margin_type=MarginType.PERCENT,
                platform_margin_value=Decimal("12.5"),
                service_type=ServiceType.CLOUD_KITCHEN,
            ),
        ]
        for item in food_items:
            session.add(item)

        session.commit()

        # Кто что готовит и по какой цене (None - базовая цена блюда)
        dishes = [
            CookDish(cook_id=cooks[0].id, food_item_id=food_items[0].id, custom_price=Decimal("170")),
            CookDish(cook_id=cooks[1].id, food_item_id=food_items[0].id, custom_price=Decimal("200")),
            CookDish(cook_id=cooks[0].id, food_item_id=food_items[1].id),
            CookDish(cook_id=cooks[2].id, food_item_id=food_items[2].id, custom_price=Decimal("85")),
        ]
        for dish in dishes:
            session.add(dish)

        # Доставщики: штатный на весь панчаят и партнёр на две палаты
        staff = [
            DeliveryStaff(
                name="Suresh K",
                mobile_number="+919822222201",
                panchayat_id=1,
                assigned_panchayat_ids=[2],
                staff_type=DeliveryStaffType.FIXED_SALARY,
                is_approved=True,
            ),
            DeliveryStaff(
                name="Vineeth P",
                mobile_number="+919822222202",
                vehicle_number="KL-11-AB-1234",
                panchayat_id=1,
                assigned_wards=[3, 4],
                staff_type=DeliveryStaffType.REGISTERED_PARTNER,
                is_approved=True,
            ),
        ]
        for member in staff:
            session.add(member)

        session.commit()
        print("Test data created successfully!")


if __name__ == "__main__":
    create_test_data()
