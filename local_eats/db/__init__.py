import alembic.command
import alembic.config
from sqlalchemy import Engine
from sqlmodel import create_engine

from ..settings import Settings

# Все SQLModel модели должны быть импортированы здесь для Alembic
from .people import Profile, Cook, DeliveryStaff
from .catalog import FoodItem, CookDish
from .orders import Order, OrderItem
from .cooking import CookAssignment
from .wallet import DeliveryWallet, WalletTransaction, Settlement
from .referrals import Referral


def run_migrations(settings: Settings):
    alembic_cfg = alembic.config.Config("alembic.ini")
    alembic_cfg.set_main_option("sqlalchemy.url", settings.db_url)
    alembic_cfg.attributes["configure_logger"] = False
    alembic.command.upgrade(alembic_cfg, "head")


def create_db_engine(settings: Settings) -> Engine:
    return create_engine(settings.db_url)
