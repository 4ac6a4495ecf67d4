from __future__ import annotations

"""
Error hierarchy for the Soroban access-control library.

Every error raised by this package derives from :class:`AccessControlError`
so callers can catch the whole family while still matching the specific
failure modes:

- :class:`ConfigurationInvalid`        malformed input (address, role id,
                                       expiration ledger, endpoint URL).
                                       Raised before any I/O.
- :class:`OperationFailed`             an on-chain read or RPC call failed.
                                       Wraps the original cause.
- :class:`IndexerUnavailable`          an indexer operation was attempted
                                       without a resolved, reachable endpoint.
- :class:`IndexerQueryError`           the indexer answered with a non-2xx
                                       status or with document-level errors.
- :class:`UnsupportedContractFeatures` the contract does not expose (or does
                                       not conform to) Ownable/AccessControl.

Design
------
- Every error has ``message`` (human readable), ``code`` (stable machine
  code, e.g. ``"configuration_invalid"``) and optional ``details``.
- ``to_problem()`` returns an RFC 7807-style dict so a host service can
  serialize the error without knowing its concrete type.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence

DEFAULT_ERROR_DOCS_BASE = "https://docs.soroban-access.dev/errors"


@dataclass
class AccessControlError(Exception):
    message: str
    code: str = "access_control_error"
    details: Optional[Mapping[str, Any]] = None
    type_uri_base: str = DEFAULT_ERROR_DOCS_BASE

    def __post_init__(self) -> None:
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message

    # --- RFC 7807 helpers -------------------------------------------------- #

    def type_uri(self) -> str:
        return f"{self.type_uri_base}#{self.code}"

    def title(self) -> str:
        return {
            "configuration_invalid": "Invalid Configuration",
            "operation_failed": "Operation Failed",
            "indexer_unavailable": "Indexer Unavailable",
            "indexer_query_failed": "Indexer Query Failed",
            "unsupported_contract_features": "Unsupported Contract Features",
        }.get(self.code, self.message or "Error")

    def to_problem(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "type": self.type_uri(),
            "title": self.title(),
            "code": self.code,
            "detail": self.message,
        }
        if self.details:
            body["details"] = {k: v for k, v in self.details.items() if v is not None}
        return body


# ------------------------------ Concrete types ------------------------------- #


class ConfigurationInvalid(AccessControlError):
    """Malformed input; carries the offending value and the parameter name."""

    def __init__(self, message: str, value: Any = None, parameter: Optional[str] = None):
        super().__init__(
            message=message,
            code="configuration_invalid",
            details={"value": value, "parameter": parameter},
        )
        self.value = value
        self.parameter = parameter


class OperationFailed(AccessControlError):
    """An underlying read/call failed. ``cause`` is also chained as ``__cause__``."""

    def __init__(
        self,
        message: str,
        resource: Optional[str] = None,
        operation: Optional[str] = None,
        cause: Optional[BaseException] = None,
        *,
        code: str = "operation_failed",
        details: Optional[Mapping[str, Any]] = None,
    ):
        merged: Dict[str, Any] = {"resource": resource, "operation": operation}
        if cause is not None:
            merged["cause"] = f"{cause.__class__.__name__}: {cause}"
        if details:
            merged.update(details)
        super().__init__(message=message, code=code, details=merged)
        self.resource = resource
        self.operation = operation
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause


class IndexerQueryError(OperationFailed):
    """
    The indexer rejected a query.

    ``errors`` is the list of server-reported error objects (GraphQL
    ``errors`` array) when the failure was document-level; ``status_code``
    is set for non-2xx transport responses. ``unsupported`` is True when the
    server tagged the query as not supported by its schema (typed code in
    ``errors[].extensions.code``), which callers may treat differently from a
    genuine failure.
    """

    def __init__(
        self,
        message: str,
        resource: Optional[str] = None,
        operation: Optional[str] = None,
        cause: Optional[BaseException] = None,
        *,
        status_code: Optional[int] = None,
        errors: Optional[Sequence[Mapping[str, Any]]] = None,
        unsupported: bool = False,
    ):
        super().__init__(
            message,
            resource,
            operation,
            cause,
            code="indexer_query_failed",
            details={"status_code": status_code, "unsupported": unsupported or None},
        )
        self.status_code = status_code
        self.errors: List[Mapping[str, Any]] = list(errors or [])
        self.unsupported = unsupported


class IndexerUnavailable(AccessControlError):
    def __init__(
        self,
        message: str = "Indexer not available for this network",
        contract: Optional[str] = None,
        network_id: Optional[str] = None,
    ):
        super().__init__(
            message=message,
            code="indexer_unavailable",
            details={"contract": contract, "network_id": network_id},
        )
        self.contract = contract
        self.network_id = network_id


class UnsupportedContractFeatures(AccessControlError):
    def __init__(
        self,
        message: str,
        contract: Optional[str] = None,
        missing: Optional[Sequence[str]] = None,
    ):
        super().__init__(
            message=message,
            code="unsupported_contract_features",
            details={"contract": contract, "missing": list(missing) if missing else None},
        )
        self.contract = contract
        self.missing = list(missing or [])


__all__ = [
    "AccessControlError",
    "ConfigurationInvalid",
    "OperationFailed",
    "IndexerQueryError",
    "IndexerUnavailable",
    "UnsupportedContractFeatures",
]
