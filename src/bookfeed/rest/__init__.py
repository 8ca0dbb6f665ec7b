"""Deribit trading REST surface."""

from .client import AccessToken, DeribitApiError, DeribitRestClient

__all__ = ["AccessToken", "DeribitApiError", "DeribitRestClient"]
