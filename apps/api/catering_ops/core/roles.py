"""
Staff roles and the role groups that guard each family of endpoints.
"""
ADMIN = "admin"
OPERATIONS_LEAD = "operations_lead"
HEAD_CHEF = "head_chef"
STATION_STAFF = "station_staff"
DISPATCHER = "dispatcher"
BRANCH_MANAGER = "branch_manager"
BRANCH_STAFF = "branch_staff"
REGIONAL_MANAGER = "regional_manager"
CENTRAL_KITCHEN = "central_kitchen"

ALL_ROLES = (
    ADMIN,
    OPERATIONS_LEAD,
    HEAD_CHEF,
    STATION_STAFF,
    DISPATCHER,
    BRANCH_MANAGER,
    BRANCH_STAFF,
    REGIONAL_MANAGER,
    CENTRAL_KITCHEN,
)

# Production schedule item mutations
SCHEDULE_PLANNERS = (ADMIN, OPERATIONS_LEAD, HEAD_CHEF)
KITCHEN_ROLES = (ADMIN, OPERATIONS_LEAD, HEAD_CHEF, STATION_STAFF)

# Dispatch
ISSUE_DISMISSERS = (ADMIN, OPERATIONS_LEAD, DISPATCHER, BRANCH_MANAGER)
ITEM_REMOVERS = (ADMIN, OPERATIONS_LEAD, DISPATCHER)

# Ingredient alerts
ALERT_REPORTERS = SCHEDULE_PLANNERS
ALERT_RESOLVERS = (ADMIN, OPERATIONS_LEAD, CENTRAL_KITCHEN)
ALERT_DELETERS = (ADMIN, OPERATIONS_LEAD)

# Quality checks, budget assistant
QUALITY_REVIEWERS = (ADMIN, REGIONAL_MANAGER, OPERATIONS_LEAD)
BUDGET_CHAT_ROLES = (ADMIN, REGIONAL_MANAGER)

NOTIFICATION_PUBLISHERS = (ADMIN, OPERATIONS_LEAD)
