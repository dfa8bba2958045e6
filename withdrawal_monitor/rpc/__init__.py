"""Resilient access to ledger RPC endpoints."""

from withdrawal_monitor.rpc.client import ResilientClient
from withdrawal_monitor.rpc.config import RetryPolicy
from withdrawal_monitor.rpc.endpoints import Endpoint, EndpointPool
from withdrawal_monitor.rpc.errors import (
    ApplicationError,
    EndpointsExhaustedError,
    ErrorKind,
    RpcError,
    TransportError,
)

__all__ = [
    "ResilientClient",
    "RetryPolicy",
    "Endpoint",
    "EndpointPool",
    "ApplicationError",
    "EndpointsExhaustedError",
    "ErrorKind",
    "RpcError",
    "TransportError",
]
