"""
External API clients
"""

from qase_analytics.clients.qase import (
    QaseClient,
    QaseClientFactory,
    RetryConfig,
    create_qase_client,
)

__all__ = [
    "QaseClient",
    "QaseClientFactory",
    "RetryConfig",
    "create_qase_client",
]
