from rest_framework.throttling import AnonRateThrottle


class AuthRateThrottle(AnonRateThrottle):
    """Tighter limit for login and registration attempts"""
    scope = 'auth'
