"""
Local user persistence: the ``users`` table and the store the login flow
talks to.
"""

from .store import LocalUser, UserStore

__all__ = [
    "LocalUser",
    "UserStore",
]
