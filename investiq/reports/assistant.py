"""Rule-based financial assistant.

Picks one of a fixed set of response templates from keywords in the user's
prompt and fills it with figures from the current month. There is no
language model behind it: the same prompt and snapshot always produce the
same text.
"""
from dataclasses import dataclass
from datetime import date
from typing import Callable, Optional, Sequence, Tuple

from investiq.config import EMERGENCY_FUND_MONTHS, SAVINGS_TARGET_RATE
from investiq.models import Budget, Transaction, TransactionType
from investiq.reports.aggregator import (
    category_breakdown,
    filter_by_month,
    sum_by_type,
    top_category,
    total_balance,
)


def format_money(value: float) -> str:
    """Render an amount as ``$1,234.50`` (``-$12.00`` for negatives)."""
    if value < 0:
        return f"-${abs(value):,.2f}"
    return f"${value:,.2f}"


@dataclass(frozen=True)
class Snapshot:
    """Figures every response template draws from."""
    monthly_income: float
    monthly_expenses: float
    total_balance: float
    top_category: Optional[Tuple[str, float]]
    budget_count: int

    @property
    def net_cash_flow(self) -> float:
        return self.monthly_income - self.monthly_expenses

    @property
    def savings_rate(self) -> float:
        """Percent of this month's income kept; 0 when there is no income."""
        if self.monthly_income <= 0:
            return 0.0
        return self.net_cash_flow / self.monthly_income * 100

    @property
    def savings_target(self) -> float:
        return self.monthly_income * SAVINGS_TARGET_RATE

    @property
    def emergency_fund_target(self) -> float:
        return self.monthly_expenses * EMERGENCY_FUND_MONTHS


def build_snapshot(
    transactions: Sequence[Transaction],
    budgets: Sequence[Budget],
    today: Optional[date] = None
) -> Snapshot:
    today = today or date.today()
    monthly = filter_by_month(transactions, today.month, today.year)
    return Snapshot(
        monthly_income=sum_by_type(monthly, TransactionType.INCOME),
        monthly_expenses=sum_by_type(monthly, TransactionType.EXPENSE),
        total_balance=total_balance(transactions),
        top_category=top_category(category_breakdown(monthly)),
        budget_count=len(budgets),
    )


def _bullets(lines: Sequence[str]) -> str:
    return "\n".join(f"• {line}" for line in lines)


def spending_response(s: Snapshot) -> str:
    name, amount = s.top_category or ("N/A", 0.0)
    tips = [
        "Consider setting a budget limit for your top spending categories",
        "Track daily expenses to identify unnecessary purchases",
        "Look for subscription services you might not be using",
    ]
    if s.monthly_expenses > s.monthly_income:
        tips.append("Your expenses exceed income this month - focus on reducing discretionary spending")
    return (
        f"Based on your recent activity, you've spent {format_money(s.monthly_expenses)} this month. "
        f"Your highest spending category is \"{name}\" with {format_money(amount)}.\n\n"
        f"💡 **Recommendations:**\n{_bullets(tips)}"
    )


def budget_response(s: Snapshot) -> str:
    # The verdict follows the figure as displayed, not the unrounded rate
    rate = f"{s.savings_rate:.1f}" if s.monthly_income > 0 else "0"
    tips = [
        "Aim for the 50/30/20 rule: 50% needs, 30% wants, 20% savings",
        f"Your recommended monthly savings target: {format_money(s.savings_target)}",
        "Consider automatic transfers to a savings account",
    ]
    if s.budget_count == 0:
        tips.append("You have no budgets yet - start with a limit for your top spending category")
    if float(rate) < round(SAVINGS_TARGET_RATE * 100, 1):
        tips.append("Try to increase your savings rate by reducing discretionary spending")
    else:
        tips.append("Great job on maintaining a healthy savings rate!")
    return (
        f"Your current savings rate is {rate}% this month "
        f"(saving {format_money(s.net_cash_flow)}).\n\n"
        f"💡 **Budget Suggestions:**\n{_bullets(tips)}"
    )


def income_response(s: Snapshot) -> str:
    tips = [
        "Consider side hustles or freelance work in your spare time",
        "Ask for a raise if you haven't had one recently",
        "Explore passive income opportunities like investments",
        "Track all income sources including bonuses and gifts",
    ]
    return (
        f"Your monthly income is {format_money(s.monthly_income)}.\n\n"
        f"💡 **Income Optimization Tips:**\n{_bullets(tips)}"
    )


def balance_response(s: Snapshot) -> str:
    lines = [
        f"Monthly Income: {format_money(s.monthly_income)}",
        f"Monthly Expenses: {format_money(s.monthly_expenses)}",
        f"Net Cash Flow: {format_money(s.net_cash_flow)}",
    ]
    if s.total_balance < 0:
        verdict = "⚠️ Consider creating a debt payoff plan and increasing income or reducing expenses."
    else:
        verdict = "✅ You're maintaining a positive balance!"
    return (
        f"Your current balance is {format_money(s.total_balance)}.\n\n"
        f"📊 **Financial Summary:**\n{_bullets(lines)}\n\n{verdict}"
    )


def goal_response(s: Snapshot) -> str:
    if s.total_balance < 0:
        debt = f"Focus on eliminating {format_money(abs(s.total_balance))} debt"
    else:
        debt = "Great job staying debt-free!"
    goals = [
        f"Emergency Fund: Aim for {format_money(s.emergency_fund_target)} "
        f"({EMERGENCY_FUND_MONTHS} months expenses)",
        f"Monthly Savings: {format_money(s.savings_target)} "
        f"({SAVINGS_TARGET_RATE:.0%} of income)",
        f"Debt Payoff: {debt}",
    ]
    return (
        "Let me help you set financial goals based on your current situation:\n\n"
        f"🎯 **Recommended Goals:**\n{_bullets(goals)}\n\n"
        "📈 **Action Steps:**\n"
        "1. Set up automatic savings transfers\n"
        "2. Review and optimize your spending categories\n"
        "3. Consider increasing income through skill development"
    )


def overview_response(s: Snapshot) -> str:
    figures = [
        f"Income: {format_money(s.monthly_income)}",
        f"Expenses: {format_money(s.monthly_expenses)}",
        f"Balance: {format_money(s.total_balance)}",
    ]
    topics = [
        "Budgeting strategies and savings tips",
        "Spending analysis and expense reduction",
        "Financial goal setting and planning",
        "Income optimization ideas",
    ]
    return (
        "I can help you with various financial topics! Here's a quick overview of your finances:\n\n"
        f"📊 **This Month:**\n{_bullets(figures)}\n\n"
        f"💡 **Ask me about:**\n{_bullets(topics)}\n\n"
        "What specific area would you like to focus on?"
    )


@dataclass(frozen=True)
class ResponseRule:
    name: str
    keywords: Tuple[str, ...]
    render: Callable[[Snapshot], str]

    def matches(self, prompt: str) -> bool:
        return any(keyword in prompt for keyword in self.keywords)


# Evaluated top to bottom; the first rule with a matching keyword wins.
RULES: Tuple[ResponseRule, ...] = (
    ResponseRule("spending", ("spending", "expense"), spending_response),
    ResponseRule("budget", ("budget", "save"), budget_response),
    ResponseRule("income", ("income", "earn"), income_response),
    ResponseRule("balance", ("balance", "total"), balance_response),
    ResponseRule("goal", ("goal", "plan"), goal_response),
)

DEFAULT_RULE = ResponseRule("overview", (), overview_response)


def select_rule(prompt: Optional[str]) -> ResponseRule:
    """Pick the response rule for a prompt (case-insensitive substring match)."""
    text = (prompt or "").lower()
    for rule in RULES:
        if rule.matches(text):
            return rule
    return DEFAULT_RULE


def generate_response(
    prompt: Optional[str],
    transactions: Sequence[Transaction],
    budgets: Sequence[Budget],
    today: Optional[date] = None
) -> str:
    """Answer a free-text prompt from the user's transactions and budgets."""
    rule = select_rule(prompt)
    return rule.render(build_snapshot(transactions, budgets, today))
