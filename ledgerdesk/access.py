import logging

from ledgerdesk.errors import PermissionDenied

logger = logging.getLogger(__name__)

MENU_NAMES = (
    'Dashboard', 'Leads', 'Customers', 'Materials', 'Expenses',
    'Invoices', 'Quotations', 'Employees', 'Payroll', 'QR Codes',
    'Asset Investment', 'Daily Expenses', 'Monthly Expenses', 'Material Investment',
    'To-Do List',
)


class AccessContext:
    """
    The caller's identity and menu permissions, passed explicitly into every
    operation.

    'Admin' may do everything; 'Can Edit' may view and edit the menus listed
    in `access_menus`; 'Can View' may only view them.
    """

    def __init__(self, user_name, user_access=None, access_menus=None, user_id=None):
        self.user_name = user_name or 'Unknown User'
        self.user_access = user_access
        self.access_menus = list(access_menus or [])
        self.user_id = user_id

    @classmethod
    def from_claims(cls, claims):
        return cls(
            user_name=claims.get('user_name'),
            user_access=claims.get('user_access'),
            access_menus=claims.get('access_menus'),
            user_id=claims.get('sub'),
        )

    def is_admin(self):
        return self.user_access == 'Admin'

    def has_access(self, menu):
        if self.is_admin():
            return True
        return menu in self.access_menus

    def can_edit(self, menu):
        return self.is_admin() or (self.user_access == 'Can Edit' and self.has_access(menu))

    def can_view(self, menu):
        return self.is_admin() or (self.user_access in ('Can View', 'Can Edit') and self.has_access(menu))

    def __repr__(self):
        return f"<AccessContext {self.user_name} {self.user_access}>"


def require_edit(access, menu):
    if access is None or not access.can_edit(menu):
        logger.info(f"Edit on {menu} denied for {access!r}")
        raise PermissionDenied(f"You don't have access to edit {menu}", menu=menu)


def require_view(access, menu):
    if access is None or not access.can_view(menu):
        logger.info(f"View of {menu} denied for {access!r}")
        raise PermissionDenied(f"You don't have access to view {menu}", menu=menu)
