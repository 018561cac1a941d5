# Overview: Capability definitions for business memberships.
# Each capability is defined as: (code, name, description)

CAN_MANAGE_EMPLOYEES = "can_manage_employees"
CAN_MANAGE_TRANSACTIONS = "can_manage_transactions"
CAN_MANAGE_CASH = "can_manage_cash"
CAN_VIEW_REPORTS = "can_view_reports"
CAN_MANAGE_SETTINGS = "can_manage_settings"
CAN_INVITE_USERS = "can_invite_users"


CAPABILITY_DEFINITIONS = [
    (
        CAN_MANAGE_EMPLOYEES,
        "Manage Employees",
        "Change member roles and remove members from the business",
    ),
    (
        CAN_MANAGE_TRANSACTIONS,
        "Manage Transactions",
        "Create and edit buy/sell transactions",
    ),
    (
        CAN_MANAGE_CASH,
        "Manage Cash",
        "Record payments and cash movements",
    ),
    (
        CAN_VIEW_REPORTS,
        "View Reports",
        "Access transaction summaries",
    ),
    (
        CAN_MANAGE_SETTINGS,
        "Manage Settings",
        "Edit business profile and settings",
    ),
    (
        CAN_INVITE_USERS,
        "Invite Users",
        "Send invitations to join the business",
    ),
]


def get_all_capability_codes() -> list[str]:
    """Get list of all capability codes."""
    return [cap[0] for cap in CAPABILITY_DEFINITIONS]
