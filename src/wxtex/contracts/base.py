"""Base contract enforcement utility.

require() is the single enforcement mechanism for all contracts.
"""

from wxtex.contracts.failure import ContractViolation


def require(condition: bool, message: str) -> None:
    """Enforce a pipeline contract.

    Parameters
    ----------
    condition : bool
        The invariant that must be true. If False, ContractViolation is raised.
    message : str
        Error message explaining the contract violation.

    Raises
    ------
    ContractViolation
        If condition is False.

    Examples
    --------
    >>> require(values.ndim == 2, "Slice contract: expected 2D values")
    """
    if not condition:
        raise ContractViolation(message)
