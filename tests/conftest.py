import itertools
from datetime import datetime
from decimal import Decimal
from types import SimpleNamespace

import pytest
from sqlmodel import Session, SQLModel, create_engine

import local_eats.db  # noqa: F401
from local_eats.db.catalog import CookDish, FoodItem, MarginType
from local_eats.db.orders import (
    CookAssignmentStatus,
    CookStatus,
    Order,
    OrderItem,
    OrderStatus,
    ServiceType,
)
from local_eats.db.people import Cook, DeliveryStaff, DeliveryStaffType, Profile, Role
from local_eats.services.access import Actor
from local_eats.services.notifications import Notifier


_order_numbers = itertools.count(1)


class RecordingNotifier(Notifier):
    """Запоминает события вместо отправки"""

    def __init__(self):
        super().__init__("http://notifications.test")
        self.sent = []

    def _send(self, event_type, recipients, payload):
        if not recipients:
            return False
        self.sent.append((event_type, recipients, payload))
        return True

    def events(self, event_type):
        return [(recipients, payload) for kind, recipients, payload in self.sent if kind == event_type]


@pytest.fixture
def engine(tmp_path):
    # Файловая SQLite: несколько сессий и потоков видят одну базу
    engine = create_engine(
        f"sqlite:///{tmp_path / 'test.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def world(session):
    customer = Profile(user_id=501, name="Anjali Nair", mobile_number="+919800000001")
    other_customer = Profile(user_id=502, name="Rahul Menon", mobile_number="+919800000002")
    session.add(customer)
    session.add(other_customer)

    cook_a = Cook(kitchen_name="Amma's Kitchen", mobile_number="+919811111101", panchayat_id=1)
    cook_b = Cook(kitchen_name="Spice Route", mobile_number="+919811111102", panchayat_id=1)
    session.add(cook_a)
    session.add(cook_b)

    biryani = FoodItem(
        name="Chicken Biryani",
        price=Decimal("180"),
        platform_margin_type=MarginType.PERCENT,
        platform_margin_value=Decimal("10"),
    )
    appam = FoodItem(
        name="Appam with Stew",
        price=Decimal("120"),
        platform_margin_type=MarginType.FIXED,
        platform_margin_value=Decimal("15"),
    )
    session.add(biryani)
    session.add(appam)

    partner = DeliveryStaff(
        name="Vineeth P", mobile_number="+919822222201", panchayat_id=1,
        assigned_wards=[3, 4], is_approved=True,
    )
    rival = DeliveryStaff(
        name="Arun S", mobile_number="+919822222202", panchayat_id=1,
        assigned_wards=[3], is_approved=True,
    )
    salaried = DeliveryStaff(
        name="Suresh K", mobile_number="+919822222203", panchayat_id=1,
        staff_type=DeliveryStaffType.FIXED_SALARY, is_approved=True,
    )
    far_away = DeliveryStaff(
        name="Nikhil R", mobile_number="+919822222204", panchayat_id=2,
        assigned_wards=[3], is_approved=True,
    )
    other_ward = DeliveryStaff(
        name="Jithin M", mobile_number="+919822222205", panchayat_id=1,
        assigned_wards=[7], is_approved=True,
    )
    unapproved = DeliveryStaff(
        name="Manu T", mobile_number="+919822222206", panchayat_id=1,
        assigned_wards=[3], is_approved=False,
    )
    for staff in (partner, rival, salaried, far_away, other_ward, unapproved):
        session.add(staff)
    session.commit()

    session.add(CookDish(cook_id=cook_a.id, food_item_id=biryani.id, custom_price=Decimal("170")))
    session.add(CookDish(cook_id=cook_b.id, food_item_id=biryani.id, custom_price=Decimal("200")))
    session.add(CookDish(cook_id=cook_a.id, food_item_id=appam.id))
    session.commit()

    return SimpleNamespace(
        customer=customer,
        other_customer=other_customer,
        cook_a=cook_a,
        cook_b=cook_b,
        biryani=biryani,
        appam=appam,
        partner=partner,
        rival=rival,
        salaried=salaried,
        far_away=far_away,
        other_ward=other_ward,
        unapproved=unapproved,
    )


@pytest.fixture
def admin():
    return Actor(user_id=1, role=Role.ADMIN)


def actor_for(obj) -> Actor:
    if isinstance(obj, Profile):
        return Actor(user_id=obj.user_id, role=Role.CUSTOMER)
    if isinstance(obj, Cook):
        return Actor(user_id=obj.id, role=Role.COOK)
    return Actor(user_id=obj.id, role=Role.DELIVERY)


@pytest.fixture
def as_actor():
    return actor_for


@pytest.fixture
def ready_order(session, world):
    """Заказ, у которого кухня готова и который ждёт доставщика."""

    def make(
        total_amount=Decimal("500"),
        delivery_amount=Decimal("40"),
        ward_number=3,
        panchayat_id=1,
        service_type=ServiceType.HOMEMADE,
        offered_at=None,
    ) -> Order:
        now = datetime.now()
        order = Order(
            order_number=f"PCTEST{next(_order_numbers):06d}",
            customer_id=world.customer.user_id,
            service_type=service_type,
            status=OrderStatus.READY,
            cook_assignment_status=CookAssignmentStatus.ACCEPTED,
            cook_status=CookStatus.READY,
            total_amount=total_amount,
            delivery_amount=delivery_amount,
            panchayat_id=panchayat_id,
            ward_number=ward_number,
            delivery_address="12 Temple Road",
            assigned_cook_id=world.cook_a.id,
            created_at=now,
            updated_at=now,
            ready_at=now,
            delivery_offered_at=offered_at or now,
        )
        session.add(order)
        session.flush()
        session.add(OrderItem(
            order_id=order.id,
            food_item_id=world.biryani.id,
            quantity=1,
            base_price=total_amount,
            unit_price=total_amount,
            total_price=total_amount,
        ))
        session.commit()
        session.refresh(order)
        return order

    return make
