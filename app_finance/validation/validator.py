"""
Form Validation

DESIGN DECISION: Validation runs on what the user typed, before any model
is built, so every problem can be reported at once with a pt-BR message
next to its field. Pydantic still guards the model invariants; a form
that passes here always builds a valid model.

IMPORTANT: Validation NEVER silently fixes issues and NEVER raises for
user input. It reports them.
"""

import re
from decimal import Decimal
from typing import Optional

from pydantic import ValidationError

from app_finance.config import get_settings
from app_finance.models.finance import FixedBillCategory
from app_finance.models.validation import ValidationIssue, ValidationResult
from app_finance.utils.currency import parse_brl


EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
CODE_PATTERN = re.compile(r"^\d{6}$")
LAST_FOUR_PATTERN = re.compile(r"^\d{4}$")
COLOR_PATTERN = re.compile(r"^#[0-9A-Fa-f]{6}$")

MAX_INSTALLMENTS = 72
MAX_DESCRIPTION_LENGTH = 200


def _error(field: str, issue_type: str, message: str, fix: Optional[str] = None) -> ValidationIssue:
    return ValidationIssue(
        field=field,
        issue_type=issue_type,
        message=message,
        severity="error",
        suggested_fix=fix,
    )


def _warning(field: str, issue_type: str, message: str) -> ValidationIssue:
    return ValidationIssue(
        field=field,
        issue_type=issue_type,
        message=message,
        severity="warning",
    )


class FormValidator:
    """
    Validates the app's input forms.

    Each ``validate_*`` method returns a ValidationResult; ``is_valid``
    tells whether the form can be saved.
    """

    def __init__(self, min_password_length: Optional[int] = None):
        self._min_password_length = (
            min_password_length or get_settings().app.min_password_length
        )

    # =========================================================================
    # FIELD CHECKS
    # =========================================================================

    @staticmethod
    def parse_amount(text: Optional[str], field: str = "amount") -> tuple[Optional[Decimal], list[ValidationIssue]]:
        """
        Parse a pt-BR amount ("1.234,56") that must be positive.

        Returns: (amount or None, issues)
        """
        if text is None or not text.strip():
            return None, [_error(field, "missing", "Informe o valor")]
        try:
            amount = parse_brl(text)
        except ValueError:
            return None, [_error(
                field, "invalid_format", "Valor inválido",
                fix="Use o formato 1.234,56",
            )]
        if amount <= 0:
            return None, [_error(field, "out_of_range", "O valor deve ser maior que zero")]
        return amount, []

    @staticmethod
    def _check_required(value: Optional[str], field: str, message: str) -> list[ValidationIssue]:
        if value is None or not value.strip():
            return [_error(field, "missing", message)]
        return []

    @staticmethod
    def _check_day(day: Optional[int], field: str, label: str) -> list[ValidationIssue]:
        if day is None:
            return [_error(field, "missing", f"Informe o {label}")]
        if not 1 <= day <= 31:
            return [_error(field, "out_of_range", f"O {label} deve estar entre 1 e 31")]
        return []

    @staticmethod
    def _check_installments(
        total: Optional[int],
        paid_or_start: Optional[int],
        total_field: str,
        other_field: str,
        other_message: str,
    ) -> list[ValidationIssue]:
        issues = []
        if total is not None and not 1 <= total <= MAX_INSTALLMENTS:
            issues.append(_error(
                total_field, "out_of_range",
                f"O número de parcelas deve estar entre 1 e {MAX_INSTALLMENTS}",
            ))
        if paid_or_start is not None:
            if paid_or_start < 0:
                issues.append(_error(other_field, "out_of_range", "Valor de parcela inválido"))
            elif total is not None and paid_or_start > total:
                issues.append(_error(other_field, "inconsistent", other_message))
        return issues

    @staticmethod
    def model_issues(error: ValidationError) -> list[ValidationIssue]:
        """One error per field the model rejected."""
        return [
            _error(
                ".".join(str(part) for part in item["loc"]) or "form",
                "invalid_value",
                item["msg"],
            )
            for item in error.errors()
        ]

    # =========================================================================
    # FORMS
    # =========================================================================

    def validate_transaction(
        self,
        amount_text: Optional[str],
        description: Optional[str],
        installments: Optional[int] = None,
        starting_installment: Optional[int] = None,
        credit_card_id: Optional[str] = None,
        use_custom_category: bool = False,
        custom_category_name: Optional[str] = None,
    ) -> ValidationResult:
        """
        Validate the add-transaction form.

        Installments only make sense on a credit card purchase.
        """
        _, issues = self.parse_amount(amount_text)
        issues += self._check_required(description, "description", "Informe uma descrição")
        if description and len(description.strip()) > MAX_DESCRIPTION_LENGTH:
            issues.append(_error(
                "description", "too_long",
                f"A descrição deve ter no máximo {MAX_DESCRIPTION_LENGTH} caracteres",
            ))
        # no installments means a single 1/1 payment
        issues += self._check_installments(
            installments if installments is not None else 1, starting_installment,
            "installments", "starting_installment",
            "A parcela inicial não pode ser maior que o número de parcelas",
        )
        if starting_installment is not None and starting_installment < 1:
            issues.append(_error(
                "starting_installment", "out_of_range", "A parcela inicial deve ser pelo menos 1"
            ))
        if installments and installments > 1 and credit_card_id is None:
            issues.append(_warning(
                "installments", "no_card",
                "Compras parceladas normalmente usam um cartão de crédito",
            ))
        if use_custom_category:
            issues += self._check_required(
                custom_category_name, "custom_category_name", "Informe o nome da categoria"
            )
        return ValidationResult(form="transaction", issues=issues)

    def validate_fixed_bill(
        self,
        name: Optional[str],
        amount_text: Optional[str],
        due_day: Optional[int],
        category: FixedBillCategory = FixedBillCategory.OTHER,
        custom_category_name: Optional[str] = None,
        total_installments: Optional[int] = None,
        paid_installments: Optional[int] = None,
    ) -> ValidationResult:
        issues = self._check_required(name, "name", "Informe o nome da conta")
        _, amount_issues = self.parse_amount(amount_text)
        issues += amount_issues
        issues += self._check_day(due_day, "due_day", "dia de vencimento")
        if category is FixedBillCategory.CUSTOM:
            issues += self._check_required(
                custom_category_name, "custom_category_name", "Informe o nome da categoria"
            )
        issues += self._check_installments(
            total_installments, paid_installments,
            "total_installments", "paid_installments",
            "Parcelas pagas não podem ser maiores que o total de parcelas",
        )
        if paid_installments and total_installments is None:
            issues.append(_error(
                "total_installments", "missing", "Informe o total de parcelas"
            ))
        return ValidationResult(form="fixed_bill", issues=issues)

    def validate_credit_card(
        self,
        card_name: Optional[str],
        closing_day: Optional[int],
        payment_day: Optional[int],
        last_four_digits: Optional[str] = None,
        limit_text: Optional[str] = None,
    ) -> ValidationResult:
        issues = self._check_required(card_name, "card_name", "Informe o nome do cartão")
        issues += self._check_day(closing_day, "closing_day", "dia de fechamento")
        issues += self._check_day(payment_day, "payment_day", "dia de pagamento")
        if last_four_digits and not LAST_FOUR_PATTERN.match(last_four_digits):
            issues.append(_error(
                "last_four_digits", "invalid_format", "Informe os 4 últimos dígitos do cartão"
            ))
        if limit_text and limit_text.strip():
            _, limit_issues = self.parse_amount(limit_text, field="limit_amount")
            issues += limit_issues
        if (
            closing_day is not None
            and payment_day is not None
            and closing_day == payment_day
        ):
            issues.append(_warning(
                "payment_day", "suspicious",
                "O dia de pagamento costuma ser diferente do dia de fechamento",
            ))
        return ValidationResult(form="credit_card", issues=issues)

    def validate_category(self, name: Optional[str], color_hex: Optional[str]) -> ValidationResult:
        issues = self._check_required(name, "name", "Informe o nome da categoria")
        if not color_hex or not COLOR_PATTERN.match(color_hex):
            issues.append(_error("color_hex", "invalid_format", "Cor inválida"))
        return ValidationResult(form="category", issues=issues)

    # --- Auth -----------------------------------------------------------------

    def _check_email(self, email: Optional[str]) -> list[ValidationIssue]:
        if email is None or not email.strip():
            return [_error("email", "missing", "Informe o email")]
        if not EMAIL_PATTERN.match(email.strip()):
            return [_error("email", "invalid_format", "Email inválido")]
        return []

    def _check_password(self, password: Optional[str], field: str = "password") -> list[ValidationIssue]:
        if not password or len(password) < self._min_password_length:
            return [_error(
                field, "too_short", f"Mínimo {self._min_password_length} caracteres"
            )]
        return []

    def validate_login(self, email: Optional[str], password: Optional[str]) -> ValidationResult:
        issues = self._check_email(email) + self._check_password(password)
        return ValidationResult(form="login", issues=issues)

    def validate_registration(
        self,
        name: Optional[str],
        email: Optional[str],
        password: Optional[str],
        confirm_password: Optional[str],
    ) -> ValidationResult:
        issues = self._check_required(name, "name", "Informe seu nome")
        issues += self._check_email(email)
        issues += self._check_password(password)
        if password != confirm_password:
            issues.append(_error("confirm_password", "mismatch", "As senhas não conferem"))
        return ValidationResult(form="registration", issues=issues)

    def validate_new_password(
        self,
        password: Optional[str],
        confirm_password: Optional[str],
    ) -> ValidationResult:
        issues = self._check_password(password)
        if password != confirm_password:
            issues.append(_error("confirm_password", "mismatch", "As senhas não conferem"))
        return ValidationResult(form="new_password", issues=issues)

    def validate_verification_code(self, code: Optional[str]) -> ValidationResult:
        issues = []
        if not code or not CODE_PATTERN.match(code.strip()):
            issues.append(_error("code", "invalid_format", "Digite o código de 6 dígitos"))
        return ValidationResult(form="verification_code", issues=issues)
