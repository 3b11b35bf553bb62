"""
Custom throttle classes for API rate limiting.

This module provides specialized throttle classes for sensitive operations
like login and refund payout, with stricter rate limits than general API endpoints.
"""

from rest_framework.throttling import UserRateThrottle


class LoginRateThrottle(UserRateThrottle):
    """
    Throttle class for login endpoints.

    Enforces stricter rate limiting on login attempts to prevent brute force attacks.

    Typical usage:
        class PasswordLoginView(APIView):
            throttle_classes = [LoginRateThrottle]
    """
    scope = 'login'


class PayoutRateThrottle(UserRateThrottle):
    """
    Throttle class for refund processing endpoints.

    Refund processing calls the external payout rail; a tighter limit
    protects against accidental double submission from the admin console.
    """
    scope = 'payout'
