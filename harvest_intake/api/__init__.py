"""
Harvest Intake - API Module

Shared response envelope and the HTML pages shown to field operators.
"""

from .response import ApiResponse, ResponseMeta, api_response

__all__ = [
    "ApiResponse",
    "ResponseMeta",
    "api_response",
]
