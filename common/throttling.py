"""Scoped throttling shared by the API views.

Rates are looked up from Django settings at request time, so tests using
override_settings reliably affect them. Views declare a read scope and a
write scope; the scope is picked from the request method.
"""

from django.conf import settings
from rest_framework.permissions import SAFE_METHODS
from rest_framework.throttling import ScopedRateThrottle


class SettingsScopedRateThrottle(ScopedRateThrottle):
    def get_rate(self):
        rf = getattr(settings, "REST_FRAMEWORK", {})
        rates = rf.get("DEFAULT_THROTTLE_RATES", {})
        return rates.get(self.scope)


class ReadWriteThrottleMixin:
    """Use ``read_throttle_scope`` for safe methods and ``write_throttle_scope`` otherwise."""

    read_throttle_scope = None
    write_throttle_scope = None
    throttle_classes = [SettingsScopedRateThrottle]

    def get_throttles(self):
        if self.request.method in SAFE_METHODS:
            self.throttle_scope = self.read_throttle_scope
        else:
            self.throttle_scope = self.write_throttle_scope or self.read_throttle_scope
        return super().get_throttles()
