"""
Database models - import all models here so Alembic can discover them.
"""
from azura_pos.models.profile import Profile
from azura_pos.models.api_key import ApiKey
from azura_pos.models.sale_product import SaleProduct, SaleProductComponent
from azura_pos.models.sale import Sale
from azura_pos.models.stock import StockItem, StockMovement, FinishedProductionStock
from azura_pos.models.webhook_log import WebhookLog

__all__ = [
    "Profile",
    "ApiKey",
    "SaleProduct",
    "SaleProductComponent",
    "Sale",
    "StockItem",
    "StockMovement",
    "FinishedProductionStock",
    "WebhookLog",
]
