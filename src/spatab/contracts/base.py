"""Base contract enforcement utilities.

The require() function is the single enforcement mechanism for all table
contracts. It guards invariants the engine itself promises, never user input.
"""

from spatab.contracts.failure import ContractViolation


def require(condition: bool, message: str) -> None:
    """Enforce a table contract.

    Parameters
    ----------
    condition : bool
        The invariant that must be true. If False, ContractViolation is raised.

    message : str
        Error message explaining the contract violation (for debugging).

    Raises
    ------
    ContractViolation
        If condition is False. This indicates a bug in operator logic.

    Examples
    --------
    >>> require(len(row) == len(schema), "Table contract: row width mismatch")
    """
    if not condition:
        raise ContractViolation(message)
