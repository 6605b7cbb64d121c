"""
SQLAlchemy models for the catering operations API.
"""
# Accounts
from catering_ops.models.user import User
from catering_ops.models.token_blacklist import TokenBlacklist

# Kitchen production
from catering_ops.models.production import ProductionSchedule
from catering_ops.models.recipe import Recipe, RecipeInstruction

# Logistics
from catering_ops.models.dispatch import Dispatch

# Inventory
from catering_ops.models.inventory import (
    BranchInventory,
    IngredientMapping,
    InventoryCheck,
    IngredientShortage,
    IngredientAlert,
)

# ERP mirror
from catering_ops.models.odoo import (
    OdooSale,
    OdooWaste,
    OdooTransfer,
    OdooRecipe,
    OdooManufacturing,
)

# Communication & quality
from catering_ops.models.notification import Notification, NotificationRead
from catering_ops.models.quality import QualityCheck, QualityFeedback, QualityFieldConfig, QualityLike
from catering_ops.models.chat import ChatChannel, ChatMember, ChatMessage, ChatQuickReply, ChatReaction


__all__ = [
    "User",
    "TokenBlacklist",
    "ProductionSchedule",
    "Recipe",
    "RecipeInstruction",
    "Dispatch",
    "BranchInventory",
    "IngredientMapping",
    "InventoryCheck",
    "IngredientShortage",
    "IngredientAlert",
    "OdooSale",
    "OdooWaste",
    "OdooTransfer",
    "OdooRecipe",
    "OdooManufacturing",
    "Notification",
    "NotificationRead",
    "QualityCheck",
    "QualityLike",
    "QualityFeedback",
    "QualityFieldConfig",
    "ChatChannel",
    "ChatMessage",
    "ChatMember",
    "ChatReaction",
    "ChatQuickReply",
]
