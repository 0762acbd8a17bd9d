"""
This module contains centralized constants used throughout the application,
ensuring a single source of truth for roles, statuses, page keys and
collection names.
"""

# Roles stored on profile documents
ROLE_STUDENT = 'student'
ROLE_ADMIN = 'admin'
ROLES = [ROLE_STUDENT, ROLE_ADMIN]

# Registration payment lifecycle
STATUS_PENDING = 'pending'
STATUS_PAID = 'paid'

# Collection names (namespaced via AppConfig.collection_path)
EXAMS = 'exams'
REGISTRATIONS = 'registrations'

# Page keys understood by the router
PAGE_AUTH = 'auth'
PAGE_REGISTER_PROFILE = 'registerProfile'
PAGE_STUDENT_DASHBOARD = 'studentDashboard'
PAGE_ADMIN_DASHBOARD = 'adminDashboard'
PAGE_NOT_FOUND = 'notFound'
PAGES = [PAGE_AUTH, PAGE_REGISTER_PROFILE, PAGE_STUDENT_DASHBOARD,
         PAGE_ADMIN_DASHBOARD, PAGE_NOT_FOUND]

# Date input format for exam deadlines (HTML date input style)
DATE_FORMAT = '%Y-%m-%d'

MIN_PASSWORD_LENGTH = 6
