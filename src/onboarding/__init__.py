"""
Consultant and organization onboarding service.

Registration, phone/email verification, administrative review, login and
session tokens for the two principal types: individual consultants and
organizations.
"""

__version__ = "0.1.0"
