"""Models package — import all models so metadata.create_all sees them."""

from employdex.models.role import Role, Permission, RolePermission, ADMIN_ROLE, DEFAULT_ROLE
from employdex.models.user import User, UserRole
from employdex.models.feature_toggle import FeatureToggle
from employdex.models.activity_log import ActivityLog
from employdex.models.payment import PaymentQrCode, PaymentTransaction

__all__ = [
    "Role", "Permission", "RolePermission", "ADMIN_ROLE", "DEFAULT_ROLE",
    "User", "UserRole", "FeatureToggle", "ActivityLog",
    "PaymentQrCode", "PaymentTransaction",
]
