"""
OTP Login Demo
==============

A server-rendered FastAPI site demonstrating passwordless login with
one-time passcodes (email or SMS) delivered by a hosted authentication
provider, synced into a local relational user table and kept in a signed
session cookie.

Packages:
    - auth     : /login flow, provider client, session cookie
    - account  : home, profile and logout pages
    - users    : local user table and store

Usage:
    uvicorn otp_login.main:create_app --factory
"""

__version__ = "1.0.0"
