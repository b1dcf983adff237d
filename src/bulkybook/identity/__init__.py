"""Accounts, sign-in cookies, roles and external logins."""
