from __future__ import annotations

import enum
import re


class ConfigError(ValueError):
    """Missing identity or unparseable required settings. Halts startup."""


class LedgerError(Exception):
    pass


class TransientNetworkError(LedgerError):
    pass


class ParseError(LedgerError):
    pass


class SubmissionError(LedgerError):
    pass


class RaceRejectedError(SubmissionError):
    pass


class InsufficientFundsError(Exception):
    def __init__(self, balance: float, required: float):
        super().__init__(f"balance {balance:.6f} SOL below required {required:.6f} SOL")
        self.balance = balance
        self.required = required


class ErrorClass(str, enum.Enum):
    TRANSIENT = "transient"
    PARSE = "parse"
    RACE = "race"
    FUNDS = "funds"
    FATAL = "fatal"
    OTHER = "other"


_RACE_MARKERS = ("already", "duplicate")
_PROGRAM_ERROR_MARKERS = ("custom program error", "'custom':")
_HEX_CODE = re.compile(r"\b0x[0-9a-f]+\b")


def is_race_message(message: str) -> bool:
    msg = message.lower()
    return any(marker in msg for marker in _RACE_MARKERS)


def is_program_error(message: str) -> bool:
    """Program-level rejection (custom error code) rather than a transport failure."""
    msg = message.lower()
    if any(marker in msg for marker in _PROGRAM_ERROR_MARKERS):
        return True
    return _HEX_CODE.search(msg) is not None


def classify_error(exc: BaseException, *, program_errors_benign: bool = False) -> ErrorClass:
    """Map ``exc`` to an :class:`ErrorClass`.

    ``program_errors_benign`` is for claims, where the program rejecting with a
    custom error code means there was nothing to claim. Everywhere else such a
    rejection is a real failure.
    """
    if isinstance(exc, ConfigError):
        return ErrorClass.FATAL
    if isinstance(exc, InsufficientFundsError):
        return ErrorClass.FUNDS
    if isinstance(exc, RaceRejectedError):
        return ErrorClass.RACE
    if isinstance(exc, ParseError):
        return ErrorClass.PARSE
    if isinstance(exc, (TransientNetworkError, TimeoutError, ConnectionError, OSError)):
        return ErrorClass.TRANSIENT
    if isinstance(exc, SubmissionError):
        msg = str(exc)
        if is_race_message(msg) or (program_errors_benign and is_program_error(msg)):
            return ErrorClass.RACE
    return ErrorClass.OTHER
