"""Well-known role names."""

ROLE_ADMIN = "Admin"
ROLE_EMPLOYEE = "Employee"
ROLE_USER_INDIVIDUAL = "Individual"
ROLE_USER_COMPANY = "Company"

ALL_ROLES = (ROLE_ADMIN, ROLE_EMPLOYEE, ROLE_USER_INDIVIDUAL, ROLE_USER_COMPANY)
