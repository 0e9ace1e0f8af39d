# goalete/auth.py
"""Admin credential checks for the bearer-token guarded routes."""
import secrets


class CredentialChecker:
    """Interface for validating an admin bearer token."""

    def check(self, token):
        raise NotImplementedError


class PasscodeChecker(CredentialChecker):
    """Single shared passcode, compared in constant time."""

    def __init__(self, passcode):
        self.passcode = passcode

    def check(self, token):
        if not self.passcode or not token:
            return False
        return secrets.compare_digest(str(token).encode(), str(self.passcode).encode())
