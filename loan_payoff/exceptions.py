"""Exception classes for the loan payoff engine.

Only genuine precondition violations are raised. A loan whose payment never
clears the balance is not an error: the schedule simply stops at the
iteration cap and :func:`loan_payoff.engine.is_paid_off` reports it.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class LoanPayoffError(Exception):
    """Base exception for all loan payoff errors.

    Attributes:
        message: Human-readable error description
        context: Additional context information about the error
    """

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} (Context: {context_str})"
        return self.message


class InvalidInputError(LoanPayoffError, ValueError):
    """Raised for inputs outside the domain a calculation accepts.

    Example:
        >>> raise InvalidInputError(
        ...     "Term must be positive",
        ...     context={"term_months": 0}
        ... )
    """
