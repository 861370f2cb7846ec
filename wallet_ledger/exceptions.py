"""
Typed Exception Hierarchy for the Wallet Ledger.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (the CLI, the interchange layer, tests) must be able to tell a bad
input apart from a corrupted ledger without parsing message strings:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable)
  3. Exceptions carry structured DATA (not just a message string)

Example:
    try:
        orchestrator.record_transfer("Checking", "Groceries", 5000)
    except NegativeBalanceNotAllowedError as e:
        print(f"{e.wallet_name} would drop to {e.resulting_balance}")

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    LedgerError (base)
    |
    +-- ValidationError                  recoverable, no state change
    |   +-- WalletError
    |   |   +-- WalletNotFoundError
    |   |   +-- ArchivedWalletError
    |   |   +-- InvalidWalletTypeError
    |   |   +-- InvalidCurrencyError
    |   |   +-- CurrencyMismatchError
    |   +-- DuplicateNameError
    |   +-- TransferError
    |   |   +-- SameWalletError
    |   |   +-- NonPositiveAmountError
    |   |   +-- NegativeBalanceNotAllowedError
    |   |   +-- TransferNotFoundError
    |   +-- ReversalError
    |   |   +-- ReverseAmountExceedsOriginalError
    |   |   +-- AlreadyFullyReversedError
    |   +-- BudgetError
    |   |   +-- BudgetNotFoundError
    |   |   +-- InvalidPeriodTypeError
    |   +-- ScheduleError
    |   |   +-- ScheduleNotFoundError
    |   |   +-- InvalidRecurrencePatternError
    |   |   +-- InvalidScheduleTransitionError
    |   |   +-- ScheduleNotDueError
    |   |   +-- ScheduleCompletedError
    |   +-- InvalidDateRangeError
    |   +-- MoneyFormatError
    |
    +-- IntegrityError                   fatal, never auto-repaired
        +-- LedgerIntegrityError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category     | Code                             | When Raised
-------------|----------------------------------|------------------------------------
Wallet       | WALLET_NOT_FOUND                 | Name/id does not resolve
             | WALLET_ARCHIVED                  | Archived wallet used as endpoint
             | INVALID_WALLET_TYPE              | Type outside the five known types
             | INVALID_CURRENCY                 | Not a 3-letter code
             | CURRENCY_MISMATCH                | Endpoints hold different currencies
Naming       | DUPLICATE_NAME                   | Wallet/budget/schedule name taken
Transfer     | SAME_WALLET                      | from == to
             | NON_POSITIVE_AMOUNT              | amount <= 0
             | NEGATIVE_BALANCE_NOT_ALLOWED     | Debit wallet would go below zero
             | TRANSFER_NOT_FOUND               | Transfer id does not exist
Reversal     | REVERSE_AMOUNT_EXCEEDS_ORIGINAL  | Cumulative reversals > original
             | ALREADY_FULLY_REVERSED           | Nothing left to reverse
Budget       | BUDGET_NOT_FOUND                 | Budget name does not exist
             | INVALID_PERIOD_TYPE              | Not weekly/monthly/yearly
Schedule     | SCHEDULE_NOT_FOUND               | Schedule name does not exist
             | INVALID_RECURRENCE_PATTERN       | Not daily/weekly/monthly/yearly
             | INVALID_SCHEDULE_TRANSITION      | e.g. resume a completed schedule
             | SCHEDULE_NOT_DUE                 | Explicit run before due date
             | SCHEDULE_COMPLETED               | Explicit run of a completed schedule
Input        | INVALID_DATE_RANGE               | end before start
             | MONEY_FORMAT                     | Unparseable amount string
Integrity    | LEDGER_INTEGRITY                 | Sum of balances != 0, sequence gaps
             | IMMUTABILITY_VIOLATION           | UPDATE/DELETE of a transfer

===============================================================================
HANDLING PATTERNS
===============================================================================

ValidationError subclasses are reported to the user and the transaction is
rolled back.  IntegrityError subclasses signal data corruption: they are
logged at ERROR and surfaced distinctly (the CLI exits with status 2).
Nothing catches an IntegrityError in order to repair the ledger.
"""


class LedgerError(Exception):
    """
    Base exception for all wallet ledger errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "LEDGER_ERROR"


class ValidationError(LedgerError):
    """Base for recoverable input errors. No state was changed."""

    code: str = "VALIDATION_ERROR"


class IntegrityError(LedgerError):
    """Base for fatal data-corruption signals."""

    code: str = "INTEGRITY_ERROR"


# Wallet-related exceptions


class WalletError(ValidationError):
    """Base exception for wallet-related errors."""

    code: str = "WALLET_ERROR"


class WalletNotFoundError(WalletError):
    """Wallet with given name or id was not found."""

    code: str = "WALLET_NOT_FOUND"

    def __init__(self, wallet_ref: str):
        self.wallet_ref = wallet_ref
        super().__init__(f"Wallet not found: {wallet_ref}")


class ArchivedWalletError(WalletError):
    """Archived wallets accept no new transfers."""

    code: str = "WALLET_ARCHIVED"

    def __init__(self, wallet_name: str):
        self.wallet_name = wallet_name
        super().__init__(f"Wallet is archived: {wallet_name}")


class InvalidWalletTypeError(WalletError):
    """Wallet type is not one of the known types."""

    code: str = "INVALID_WALLET_TYPE"

    def __init__(self, wallet_type: str):
        self.wallet_type = wallet_type
        super().__init__(
            f"Invalid wallet type '{wallet_type}'. "
            "Valid types: asset, liability, income, expense, equity"
        )


class InvalidCurrencyError(WalletError):
    """Currency code is not a three-letter code."""

    code: str = "INVALID_CURRENCY"

    def __init__(self, currency: str):
        self.currency = currency
        super().__init__(f"Invalid currency code: {currency!r}")


class CurrencyMismatchError(WalletError):
    """Both endpoints of a transfer must hold the same currency."""

    code: str = "CURRENCY_MISMATCH"

    def __init__(self, from_currency: str, to_currency: str):
        self.from_currency = from_currency
        self.to_currency = to_currency
        super().__init__(
            f"Currency mismatch between wallets: {from_currency} vs {to_currency}"
        )


class DuplicateNameError(ValidationError):
    """A wallet, budget or scheduled transfer with this name already exists."""

    code: str = "DUPLICATE_NAME"

    def __init__(self, entity_type: str, name: str):
        self.entity_type = entity_type
        self.name = name
        super().__init__(f"{entity_type} already exists: {name}")


# Transfer-related exceptions


class TransferError(ValidationError):
    """Base exception for transfer-related errors."""

    code: str = "TRANSFER_ERROR"


class SameWalletError(TransferError):
    """Source and destination are the same wallet."""

    code: str = "SAME_WALLET"

    def __init__(self, wallet_name: str):
        self.wallet_name = wallet_name
        super().__init__(f"Cannot transfer from a wallet to itself: {wallet_name}")


class NonPositiveAmountError(TransferError):
    """Amounts are integer cents and must be strictly positive."""

    code: str = "NON_POSITIVE_AMOUNT"

    def __init__(self, amount: int):
        self.amount = amount
        super().__init__(f"Amount must be positive, got {amount}")


class NegativeBalanceNotAllowedError(TransferError):
    """The debit wallet would end below zero and does not allow negatives."""

    code: str = "NEGATIVE_BALANCE_NOT_ALLOWED"

    def __init__(self, wallet_name: str, balance: int, required: int):
        self.wallet_name = wallet_name
        self.balance = balance
        self.required = required
        self.resulting_balance = balance - required
        super().__init__(
            f"Insufficient funds in wallet {wallet_name}: "
            f"balance {balance}, required {required}"
        )


class TransferNotFoundError(TransferError):
    """Transfer with given id was not found."""

    code: str = "TRANSFER_NOT_FOUND"

    def __init__(self, transfer_id: str):
        self.transfer_id = transfer_id
        super().__init__(f"Transfer not found: {transfer_id}")


# Reversal-related exceptions


class ReversalError(ValidationError):
    """Base exception for reversal-related errors."""

    code: str = "REVERSAL_ERROR"


class ReverseAmountExceedsOriginalError(ReversalError):
    """Cumulative reversals would exceed the original amount."""

    code: str = "REVERSE_AMOUNT_EXCEEDS_ORIGINAL"

    def __init__(
        self,
        transfer_id: str,
        original_amount: int,
        already_reversed: int,
        requested: int,
    ):
        self.transfer_id = transfer_id
        self.original_amount = original_amount
        self.already_reversed = already_reversed
        self.requested = requested
        super().__init__(
            f"Reversal of {requested} cents would exceed original amount "
            f"({original_amount} cents, {already_reversed} already reversed)"
        )


class AlreadyFullyReversedError(ReversalError):
    """Prior reversals already sum to the original amount."""

    code: str = "ALREADY_FULLY_REVERSED"

    def __init__(self, transfer_id: str, original_amount: int):
        self.transfer_id = transfer_id
        self.original_amount = original_amount
        super().__init__(
            f"Transfer {transfer_id} is already fully reversed ({original_amount} cents)"
        )


# Budget-related exceptions


class BudgetError(ValidationError):
    """Base exception for budget-related errors."""

    code: str = "BUDGET_ERROR"


class BudgetNotFoundError(BudgetError):
    """Budget with given name was not found."""

    code: str = "BUDGET_NOT_FOUND"

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Budget not found: {name}")


class InvalidPeriodTypeError(BudgetError):
    """Period type is not weekly, monthly or yearly."""

    code: str = "INVALID_PERIOD_TYPE"

    def __init__(self, period_type: str):
        self.period_type = period_type
        super().__init__(
            f"Invalid period '{period_type}'. Valid periods: weekly, monthly, yearly"
        )


# Schedule-related exceptions


class ScheduleError(ValidationError):
    """Base exception for scheduled-transfer errors."""

    code: str = "SCHEDULE_ERROR"


class ScheduleNotFoundError(ScheduleError):
    """Scheduled transfer with given name was not found."""

    code: str = "SCHEDULE_NOT_FOUND"

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Scheduled transfer not found: {name}")


class InvalidRecurrencePatternError(ScheduleError):
    """Pattern is not daily, weekly, monthly or yearly."""

    code: str = "INVALID_RECURRENCE_PATTERN"

    def __init__(self, pattern: str):
        self.pattern = pattern
        super().__init__(
            f"Invalid recurrence pattern '{pattern}'. "
            "Valid patterns: daily, weekly, monthly, yearly"
        )


class InvalidScheduleTransitionError(ScheduleError):
    """Status change not permitted by the schedule state machine."""

    code: str = "INVALID_SCHEDULE_TRANSITION"

    def __init__(self, name: str, from_status: str, to_status: str):
        self.name = name
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Schedule '{name}' cannot move from {from_status} to {to_status}"
        )


class ScheduleNotDueError(ScheduleError):
    """Explicit run requested before the next occurrence is due."""

    code: str = "SCHEDULE_NOT_DUE"

    def __init__(self, name: str, next_due: object):
        self.name = name
        self.next_due = next_due
        super().__init__(
            f"Schedule '{name}' is not due yet (next execution: {next_due})"
        )


class ScheduleCompletedError(ScheduleError):
    """Completed schedules never execute again."""

    code: str = "SCHEDULE_COMPLETED"

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Schedule '{name}' has completed (end date reached)")


# Input-related exceptions


class InvalidDateRangeError(ValidationError):
    """End of a range lies before its start."""

    code: str = "INVALID_DATE_RANGE"

    def __init__(self, start: object, end: object):
        self.start = start
        self.end = end
        super().__init__(f"Invalid date range: {end} is before {start}")


class MoneyFormatError(ValidationError):
    """Amount string could not be parsed into cents."""

    code: str = "MONEY_FORMAT"

    def __init__(self, value: str):
        self.value = value
        super().__init__(f"Invalid money format: {value!r}")


# Integrity exceptions


class LedgerIntegrityError(IntegrityError):
    """
    The ledger failed an integrity check.

    Raised when the sum of all balances is not zero, sequences have gaps or
    duplicates, or rows reference missing wallets.  Never auto-repaired.
    """

    code: str = "LEDGER_INTEGRITY"

    def __init__(self, issues: list[str], total_balance: int):
        self.issues = issues
        self.total_balance = total_balance
        super().__init__(
            "Ledger integrity check failed: " + "; ".join(issues)
        )


class ImmutabilityViolationError(IntegrityError):
    """Attempted to modify or delete an immutable record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
