"""Centralized failure type for contract violations.

Contracts fail fast, loud, and once. All violations raise the same
exception type, so callers can handle pipeline bugs uniformly.
"""


class ContractViolation(RuntimeError):
    """Raised when a pipeline contract is violated.

    This indicates a bug in pipeline logic, not bad user input or a
    recoverable data condition.

    Key distinction:
    - ValidationError: User/config error (handled by Pydantic)
    - ContractViolation: Pipeline bug (programmer error)
    - FieldStoreError: Recoverable store failure (layer is dropped)
    """
    pass
