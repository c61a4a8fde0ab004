"""
Permission registry: single source of truth for every permission name the
system recognises, plus the default permission sets of the built-in roles.
"""

WILDCARD = "*"

# name -> description. Names are "<resource>:<action>".
PERMISSION_DEFINITIONS = {
    # User management
    "users:create": "Create new users",
    "users:read": "View user details",
    "users:update": "Update user information",
    "users:delete": "Delete users",

    # Branch management
    "branches:create": "Create new branches",
    "branches:read": "View branch details",
    "branches:update": "Update branch information",
    "branches:delete": "Delete branches",

    # Role management
    "roles:create": "Create new roles",
    "roles:read": "View role details",
    "roles:update": "Update role permissions",
    "roles:delete": "Delete roles",

    # Students
    "students:create": "Create new students",
    "students:read": "View student details",
    "students:update": "Update student information",
    "students:delete": "Delete students",
    "students:read_own": "View own student profile",

    # Teachers
    "teachers:create": "Create new teachers",
    "teachers:read": "View teacher details",
    "teachers:update": "Update teacher information",
    "teachers:delete": "Delete teachers",

    # Courses
    "courses:create": "Create new courses",
    "courses:read": "View course details",
    "courses:update": "Update course information",
    "courses:delete": "Delete courses",

    # Attendance
    "attendance:create": "Mark attendance",
    "attendance:read": "View attendance records",
    "attendance:update": "Update attendance records",
    "attendance:delete": "Delete attendance records",
    "attendance:read_own": "View own attendance",

    # Grades
    "grades:create": "Enter grades",
    "grades:read": "View grade records",
    "grades:update": "Update grades",
    "grades:delete": "Delete grades",
    "grades:read_own": "View own grades",

    # Admissions
    "admissions:create": "Create admission applications",
    "admissions:read": "View admissions",
    "admissions:update": "Update admission status",
    "admissions:delete": "Delete admissions",

    # Finance
    "finance:create": "Create fee records",
    "finance:read": "View financial records",
    "finance:update": "Update financial records",
    "finance:read_own": "View own fee status",

    # Payroll
    "payroll:create": "Generate payroll",
    "payroll:read": "View payroll records",
    "payroll:update": "Update payroll",
    "payroll:read_own": "View own payroll",

    # Library
    "library:create": "Add library items",
    "library:read": "View library catalog",
    "library:update": "Update library items",
    "library:delete": "Delete library items",

    # Health records
    "health:create": "Create health records",
    "health:read": "View health records",
    "health:update": "Update health records",

    # Analytics & reports
    "analytics:read": "View analytics and reports",
    "reports:generate": "Generate reports",
    "reports:export": "Export data",

    # Announcements & messaging
    "announcements:create": "Create announcements",
    "announcements:read": "View announcements",
    "messaging:send": "Send messages",
    "messaging:read": "Read messages",

    # Assignments
    "assignments:create": "Create assignments",
    "assignments:read": "View assignments",
    "assignments:update": "Update assignments",
    "assignments:submit": "Submit assignments",

    # Leave
    "leave:create": "Create leave requests",
    "leave:read": "View leave requests",
    "leave:update": "Update/approve leave",
    "leave:delete": "Delete leave requests",

    # Events
    "events:create": "Create events",
    "events:read": "View events",
    "events:update": "Update events",
    "events:delete": "Delete events",

    # System administration
    "system:admin": "Full system administration access",
    "system:settings": "Modify system settings",
    "system:audit": "View audit logs",
    "system:backup": "Manage backups",
}

SUPERADMIN_ROLE = "SuperAdmin"

# Built-in branch roles -> granted permission names. SuperAdmin gets the whole catalog.
DEFAULT_ROLE_PERMISSIONS = {
    SUPERADMIN_ROLE: {WILDCARD},
    "BranchAdmin": {
        "branches:read", "branches:update",
        "users:create", "users:read", "users:update",
        "roles:read",
        "students:create", "students:read", "students:update", "students:delete",
        "teachers:create", "teachers:read", "teachers:update", "teachers:delete",
        "courses:create", "courses:read", "courses:update", "courses:delete",
        "attendance:create", "attendance:read", "attendance:update",
        "grades:create", "grades:read", "grades:update",
        "admissions:create", "admissions:read", "admissions:update",
        "finance:create", "finance:read", "finance:update",
        "payroll:create", "payroll:read", "payroll:update",
        "library:create", "library:read", "library:update",
        "health:create", "health:read", "health:update",
        "analytics:read", "reports:generate", "reports:export",
        "announcements:create", "announcements:read",
        "messaging:send", "messaging:read",
        "leave:create", "leave:read", "leave:update",
        "events:read", "events:create", "events:update",
    },
    "Teacher": {
        "branches:read",
        "teachers:read",
        "students:read",
        "courses:read", "courses:update",
        "attendance:create", "attendance:read", "attendance:update",
        "grades:create", "grades:read", "grades:update",
        "assignments:create", "assignments:read", "assignments:update",
        "announcements:create", "announcements:read",
        "messaging:send", "messaging:read",
        "library:read",
        "payroll:read_own",
        "leave:create", "leave:read",
    },
    "Student": {
        "students:read_own",
        "courses:read",
        "attendance:read_own",
        "grades:read_own",
        "assignments:read", "assignments:submit",
        "announcements:read",
        "messaging:read",
        "library:read",
        "finance:read_own",
    },
}

DEFAULT_ROLE_DESCRIPTIONS = {
    SUPERADMIN_ROLE: "System administrator with full access to all resources",
    "BranchAdmin": "Branch administrator with management access to branch resources",
    "Teacher": "Teaching staff with access to classes and student management",
    "Student": "Student with access to own academic records",
}
