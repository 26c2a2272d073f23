"""
Two-Stage Entry Validation

DESIGN DECISION: Form input is validated in two distinct stages:

STAGE 1 - SCHEMA VALIDATION:
- Required field presence
- Positive amounts
- Fields required by the chosen goal horizon / margin mode

STAGE 2 - SEMANTIC VALIDATION:
- Future-dated entries
- Absurd amounts
- Sale cost above the sale amount
- Zero manual margin (no revenue pace can be projected)

Errors block saving. Warnings are shown but the user may still save.

IMPORTANT: Validation NEVER silently fixes issues.
It reports them so the user can correct the form.
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

from profit_tracker.config import AppSettings, get_settings
from profit_tracker.models.goal import GoalHorizon, MarginMode
from profit_tracker.models.record import RecordKind
from profit_tracker.models.results import ValidationIssue, ValidationResult


def _is_valid(issues: list[ValidationIssue]) -> bool:
    return not any(issue.severity == "error" for issue in issues)


class EntryValidator:
    """
    Validates new records and goals before they are sent to the store.
    """

    def __init__(self, settings: Optional[AppSettings] = None):
        self._settings = settings or get_settings().app

    # -------------------------------------------------------------------------
    # Records
    # -------------------------------------------------------------------------

    def _validate_record_schema(
        self,
        amount: Optional[Decimal],
        description: Optional[str],
        occurred_on: Optional[date],
        product_cost: Optional[Decimal],
    ) -> list[ValidationIssue]:
        issues = []

        if amount is None:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="missing",
                message="Amount is required",
                severity="error",
            ))
        elif not amount.is_finite() or amount <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount must be a number greater than zero",
                severity="error",
            ))

        if not description or not description.strip():
            issues.append(ValidationIssue(
                field="description",
                issue_type="missing",
                message="Description is required",
                severity="error",
                suggested_fix="Name the product, expense or investment",
            ))
        elif len(description.strip()) > 200:
            issues.append(ValidationIssue(
                field="description",
                issue_type="invalid_value",
                message="Description must be at most 200 characters",
                severity="error",
            ))

        if occurred_on is None:
            issues.append(ValidationIssue(
                field="occurred_on",
                issue_type="missing",
                message="Date is required",
                severity="error",
            ))

        if product_cost is not None and (
            not product_cost.is_finite() or product_cost < 0
        ):
            issues.append(ValidationIssue(
                field="product_cost",
                issue_type="invalid_value",
                message="Product cost must be a number of zero or more",
                severity="error",
            ))

        return issues

    def _validate_record_semantic(
        self,
        kind: RecordKind,
        amount: Decimal,
        occurred_on: date,
        product_cost: Optional[Decimal],
        today: date,
    ) -> list[ValidationIssue]:
        issues = []

        max_future_date = today + timedelta(
            days=self._settings.future_date_tolerance_days
        )
        if occurred_on > max_future_date:
            issues.append(ValidationIssue(
                field="occurred_on",
                issue_type="future_date",
                message=f"Date ({occurred_on}) is in the future",
                severity="warning",
                suggested_fix="Future-dated entries only count once that day arrives",
            ))

        # Probably a typo in the year
        if occurred_on < today - timedelta(days=365 * 2):
            issues.append(ValidationIssue(
                field="occurred_on",
                issue_type="suspicious_date",
                message=f"Date ({occurred_on}) seems unusually old",
                severity="warning",
                suggested_fix="Please verify the date",
            ))

        max_amount = Decimal(str(self._settings.max_entry_amount))
        if amount > max_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount ({amount:,.2f}) seems unusually high",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))

        if (
            kind is RecordKind.SALE
            and product_cost is not None
            and product_cost > amount
        ):
            issues.append(ValidationIssue(
                field="product_cost",
                issue_type="inconsistent",
                message="Product cost is higher than the sale amount",
                severity="warning",
                suggested_fix="Please verify both amounts",
            ))

        return issues

    def validate_record_input(
        self,
        kind: RecordKind,
        amount: Optional[Decimal],
        description: Optional[str],
        occurred_on: Optional[date],
        product_cost: Optional[Decimal] = None,
        today: Optional[date] = None,
    ) -> ValidationResult:
        """
        Validate a sale, expense or investment entered in the form.

        Args:
            kind: Kind of record being entered
            amount: Amount typed by the user
            description: Description typed by the user
            occurred_on: Date the transaction is attributed to
            product_cost: Cost of goods (sales only)
            today: Reference date (defaults to today)
        """
        today = today or date.today()
        if kind is not RecordKind.SALE:
            product_cost = None

        issues = self._validate_record_schema(
            amount, description, occurred_on, product_cost
        )
        schema_valid = _is_valid(issues)

        # Only run stage 2 if stage 1 passes
        semantic_valid = False
        if schema_valid:
            semantic_issues = self._validate_record_semantic(
                kind, amount, occurred_on, product_cost, today
            )
            issues.extend(semantic_issues)
            semantic_valid = _is_valid(semantic_issues)

        return ValidationResult(
            schema_valid=schema_valid,
            semantic_valid=semantic_valid,
            issues=issues,
            warnings=[i.message for i in issues if i.severity == "warning"],
        )

    # -------------------------------------------------------------------------
    # Goals
    # -------------------------------------------------------------------------

    def validate_goal_input(
        self,
        horizon: GoalHorizon,
        target_amount: Optional[Decimal],
        work_days: Optional[int] = None,
        margin_mode: MarginMode = MarginMode.AUTOMATIC,
        manual_margin_percent: Optional[Decimal] = None,
    ) -> ValidationResult:
        """Validate a goal entered in the form."""
        issues = []

        if target_amount is None:
            issues.append(ValidationIssue(
                field="target_amount",
                issue_type="missing",
                message="Target amount is required",
                severity="error",
            ))
        elif not target_amount.is_finite() or target_amount <= 0:
            issues.append(ValidationIssue(
                field="target_amount",
                issue_type="invalid_value",
                message="Target amount must be a number greater than zero",
                severity="error",
            ))

        if horizon is GoalHorizon.CUSTOM:
            if work_days is None or work_days <= 0:
                issues.append(ValidationIssue(
                    field="work_days",
                    issue_type="missing",
                    message="Custom goals need a positive number of work days",
                    severity="error",
                ))
            elif work_days > 366:
                issues.append(ValidationIssue(
                    field="work_days",
                    issue_type="invalid_value",
                    message="Work days cannot exceed one year",
                    severity="error",
                ))

        if margin_mode is MarginMode.MANUAL:
            if manual_margin_percent is None:
                issues.append(ValidationIssue(
                    field="manual_margin_percent",
                    issue_type="missing",
                    message="Manual margin mode needs a margin percentage",
                    severity="error",
                ))
            elif (
                not manual_margin_percent.is_finite()
                or not 0 <= manual_margin_percent <= 100
            ):
                issues.append(ValidationIssue(
                    field="manual_margin_percent",
                    issue_type="invalid_value",
                    message="Margin must be between 0% and 100%",
                    severity="error",
                ))

        schema_valid = _is_valid(issues)

        semantic_valid = False
        if schema_valid:
            semantic_issues = []
            if margin_mode is MarginMode.MANUAL and manual_margin_percent == 0:
                semantic_issues.append(ValidationIssue(
                    field="manual_margin_percent",
                    issue_type="suspicious_value",
                    message="With a 0% margin no daily revenue target can be shown",
                    severity="warning",
                ))
            max_amount = Decimal(str(self._settings.max_entry_amount))
            if target_amount > max_amount:
                semantic_issues.append(ValidationIssue(
                    field="target_amount",
                    issue_type="suspicious_value",
                    message=f"Target ({target_amount:,.2f}) seems unusually high",
                    severity="warning",
                ))
            issues.extend(semantic_issues)
            semantic_valid = _is_valid(semantic_issues)

        return ValidationResult(
            schema_valid=schema_valid,
            semantic_valid=semantic_valid,
            issues=issues,
            warnings=[i.message for i in issues if i.severity == "warning"],
        )

    def get_user_friendly_summary(
        self,
        result: ValidationResult,
    ) -> str:
        """
        Generate a user-friendly summary of validation results.
        """
        if result.is_valid and not result.warnings:
            return "✅ All checks passed!"

        lines = []

        if result.has_errors:
            lines.append("❌ Please fix the following:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     💡 {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("⚠️ Please verify the following:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        return "\n".join(lines)
