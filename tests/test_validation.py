"""Tests for form validation."""

import pytest

from app_finance.models.finance import FixedBillCategory
from app_finance.validation import FormValidator


@pytest.fixture
def validator() -> FormValidator:
    return FormValidator(min_password_length=6)


class TestAmount:
    """Tests for amount parsing."""

    def test_valid_amount(self, validator):
        """Test a pt-BR amount."""
        amount, issues = validator.parse_amount("1.234,56")
        assert str(amount) == "1234.56"
        assert issues == []

    @pytest.mark.parametrize("text,message", [
        ("", "Informe o valor"),
        (None, "Informe o valor"),
        ("abc", "Valor inválido"),
        ("0", "O valor deve ser maior que zero"),
        ("-5", "O valor deve ser maior que zero"),
    ])
    def test_invalid_amounts(self, validator, text, message):
        """Test each amount error message."""
        amount, issues = validator.parse_amount(text)
        assert amount is None
        assert issues[0].message == message
        assert issues[0].severity == "error"


class TestTransactionForm:
    """Tests for the add-transaction form."""

    def test_valid(self, validator):
        """Test a complete form."""
        result = validator.validate_transaction("50,00", "Mercado")
        assert result.is_valid
        assert result.form == "transaction"

    def test_missing_description(self, validator):
        """Test that a description is required."""
        result = validator.validate_transaction("50,00", "   ")
        assert not result.is_valid
        assert result.issues_for("description")[0].message == "Informe uma descrição"

    def test_reports_every_problem(self, validator):
        """Test that all issues are reported at once."""
        result = validator.validate_transaction("", "")
        assert result.error_count == 2

    def test_starting_installment_above_total(self, validator):
        """Test installment consistency."""
        result = validator.validate_transaction(
            "300,00", "TV", installments=3, starting_installment=4, credit_card_id="C1"
        )
        assert not result.is_valid
        assert result.issues_for("starting_installment")

    def test_starting_installment_without_installments(self, validator):
        """Test that a single payment cannot start past its first installment."""
        result = validator.validate_transaction("10,00", "TV", starting_installment=2)
        assert not result.is_valid
        assert result.issues_for("starting_installment")

    def test_starting_installment_one_without_installments(self, validator):
        """Test that 1 of a single payment is fine."""
        assert validator.validate_transaction("10,00", "TV", starting_installment=1).is_valid

    def test_description_too_long(self, validator):
        """Test the description length limit."""
        result = validator.validate_transaction("10,00", "x" * 201)
        assert not result.is_valid
        assert result.issues_for("description")[0].issue_type == "too_long"
        assert validator.validate_transaction("10,00", "x" * 200).is_valid

    def test_too_many_installments(self, validator):
        """Test the installment upper bound."""
        result = validator.validate_transaction("300,00", "TV", installments=73, credit_card_id="C1")
        assert not result.is_valid

    def test_installments_without_card_is_a_warning(self, validator):
        """Test that installments without a card only warn."""
        result = validator.validate_transaction("300,00", "TV", installments=3)
        assert result.is_valid
        assert result.warnings

    def test_custom_category_needs_name(self, validator):
        """Test the custom category name."""
        result = validator.validate_transaction(
            "10,00", "Ração", use_custom_category=True, custom_category_name=" "
        )
        assert result.first_error_message() == "Informe o nome da categoria"


class TestFixedBillForm:
    """Tests for the fixed bill form."""

    def test_valid(self, validator):
        """Test a complete bill."""
        result = validator.validate_fixed_bill("Aluguel", "1.500,00", 5)
        assert result.is_valid

    @pytest.mark.parametrize("due_day", [0, 32])
    def test_due_day_range(self, validator, due_day):
        """Test the due day bounds."""
        result = validator.validate_fixed_bill("Aluguel", "1.500,00", due_day)
        assert result.first_error_message() == "O dia de vencimento deve estar entre 1 e 31"

    def test_paid_above_total(self, validator):
        """Test paid installments consistency."""
        result = validator.validate_fixed_bill(
            "Carro", "900,00", 10, total_installments=10, paid_installments=11
        )
        assert (
            result.first_error_message()
            == "Parcelas pagas não podem ser maiores que o total de parcelas"
        )

    def test_paid_without_total(self, validator):
        """Test that paid installments need a total."""
        result = validator.validate_fixed_bill("Carro", "900,00", 10, paid_installments=3)
        assert result.issues_for("total_installments")

    def test_custom_category_needs_name(self, validator):
        """Test the custom category name."""
        result = validator.validate_fixed_bill(
            "Pet", "100,00", 10, category=FixedBillCategory.CUSTOM
        )
        assert result.issues_for("custom_category_name")


class TestCreditCardForm:
    """Tests for the credit card form."""

    def test_valid(self, validator):
        """Test a complete card."""
        result = validator.validate_credit_card("Roxinho", 3, 10, "1234", "5.000,00")
        assert result.is_valid
        assert result.warnings == []

    def test_same_closing_and_payment_day_warns(self, validator):
        """Test the suspicious days warning."""
        result = validator.validate_credit_card("Roxinho", 10, 10)
        assert result.is_valid
        assert len(result.warnings) == 1

    def test_bad_last_four_digits(self, validator):
        """Test the last four digits format."""
        result = validator.validate_credit_card("Roxinho", 3, 10, "12")
        assert result.issues_for("last_four_digits")

    def test_missing_days(self, validator):
        """Test that both days are required."""
        result = validator.validate_credit_card("Roxinho", None, None)
        assert result.error_count == 2


class TestCategoryForm:
    """Tests for the category form."""

    def test_valid(self, validator):
        assert validator.validate_category("Pets", "#14B8A6").is_valid

    def test_bad_color(self, validator):
        """Test the color format."""
        result = validator.validate_category("Pets", "#14B8A")
        assert result.first_error_message() == "Cor inválida"


class TestAuthForms:
    """Tests for login, registration and codes."""

    def test_login_valid(self, validator):
        assert validator.validate_login("ana@example.com", "secret1").is_valid

    def test_login_invalid_email(self, validator):
        """Test the email format."""
        result = validator.validate_login("ana@", "secret1")
        assert result.first_error_message() == "Email inválido"

    def test_login_short_password(self, validator):
        """Test the minimum password length."""
        result = validator.validate_login("ana@example.com", "123")
        assert result.first_error_message() == "Mínimo 6 caracteres"

    def test_registration_password_mismatch(self, validator):
        """Test the confirmation check."""
        result = validator.validate_registration("Ana", "ana@example.com", "secret1", "secret2")
        assert result.first_error_message() == "As senhas não conferem"

    def test_new_password(self, validator):
        """Test the reset password form."""
        assert validator.validate_new_password("secret1", "secret1").is_valid
        assert not validator.validate_new_password("secret1", "other12").is_valid

    @pytest.mark.parametrize("code,valid", [
        ("123456", True),
        (" 123456 ", True),
        ("12345", False),
        ("12a456", False),
        (None, False),
    ])
    def test_verification_code(self, validator, code, valid):
        """Test the 6 digit code."""
        assert validator.validate_verification_code(code).is_valid is valid
