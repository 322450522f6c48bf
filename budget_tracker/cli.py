# budget_tracker/cli.py
import logging
from datetime import date
from decimal import Decimal, InvalidOperation
from functools import partial

import anyio
import click
from dotenv import load_dotenv

from budget_tracker.analytics import budget_overview, filter_transactions
from budget_tracker.config import load_config
from budget_tracker.core.categorizer import suggest_category
from budget_tracker.core.models import Budget, Category, Transaction, TransactionType, to_decimal
from budget_tracker.errors import BudgetTrackerError
from budget_tracker.identity import StaticIdentity, require_user
from budget_tracker.loaders import SMSExportLoader
from budget_tracker.repository import BudgetRepository
from budget_tracker.sms import parse_transaction, to_transaction
from budget_tracker.store import SQLiteStore

logger = logging.getLogger(__name__)


class _Context:
    def __init__(self, config, db_path, user_id):
        self.config = config
        self.identity = StaticIdentity(user_id)
        self.repo = BudgetRepository(SQLiteStore(db_path), self.identity)

    def run(self, fn, *args, needs_user=True):
        try:
            if needs_user:
                require_user(self.identity)
            return anyio.run(partial(fn, *args))
        except BudgetTrackerError as exc:
            raise click.ClickException(str(exc))


def _fmt(value) -> str:
    return f"{Decimal(value):,.2f}"


class AmountType(click.ParamType):
    """A decimal amount, parsed without a detour through float."""

    name = "amount"

    def convert(self, value, param, ctx):
        try:
            return to_decimal(value)
        except (InvalidOperation, ValueError, TypeError):
            self.fail(f"{value!r} is not a valid amount", param, ctx)


AMOUNT = AmountType()


@click.group()
@click.option(
    '--config', 'config_path',
    default='config.yaml',
    type=click.Path(dir_okay=False),
    help='Path to config.yaml (defaults are used when it does not exist)'
)
@click.option(
    '--db', 'db_path',
    default=None,
    type=click.Path(dir_okay=False),
    help='SQLite database file (overrides config)'
)
@click.option(
    '--user', 'user_id',
    default=None,
    envvar='BUDGETBUDDY_USER',
    help='User id to act as (overrides config)'
)
@click.option(
    '--env-file', 'env_file',
    default=None,
    type=click.Path(exists=True, dir_okay=False),
    help='Optional .env file loaded before reading configuration'
)
@click.pass_context
def main(ctx, config_path, db_path, user_id, env_file):
    """
    Track income and expenses against monthly category limits,
    raise budget alerts and turn bank SMS messages into transactions.
    """
    if env_file:
        load_dotenv(env_file)
    cfg = load_config(config_path)
    logging.basicConfig(level=str(cfg.get('log_level', 'INFO')).upper())
    ctx.obj = _Context(
        cfg,
        db_path or cfg.get('db_path'),
        user_id or cfg.get('user_id'),
    )


@main.command()
@click.pass_obj
def init(obj):
    """Seed the default categories for a new user."""
    created = obj.run(obj.repo.initialize_default_categories, obj.config['default_categories'])
    if created:
        click.echo(f"Created {len(created)} default categories.")
    else:
        click.echo("Categories already exist; nothing to do.")


@main.command()
@click.argument('amount', type=AMOUNT)
@click.option('--type', 'tx_type', default='expense',
              type=click.Choice([t.value for t in TransactionType]),
              help='income or expense (default: expense)')
@click.option('--category', required=True, help='Category name')
@click.option('--category-id', default=None, help='Category id, preferred over the name')
@click.option('--description', default='', help='Free text description')
@click.option('--merchant', default=None, help='Merchant name')
@click.pass_obj
def add(obj, amount, tx_type, category, category_id, description, merchant):
    """Record a transaction and update category spend."""
    tx = Transaction(
        type=TransactionType(tx_type),
        amount=amount,
        category=category,
        category_id=category_id,
        description=description,
        merchant=merchant,
    )
    try:
        tx.validate()
    except BudgetTrackerError as exc:
        raise click.BadParameter(str(exc))
    saved = obj.run(obj.repo.add_transaction, tx)
    click.echo(f"Added {saved.type.value} {_fmt(saved.amount)} in {saved.category} ({saved.id}).")


@main.command()
@click.argument('transaction_id')
@click.pass_obj
def delete(obj, transaction_id):
    """Delete a transaction by id."""
    tx = obj.run(obj.repo.get_transaction, transaction_id)
    if tx is None:
        raise click.ClickException(f"No transaction with id {transaction_id}")
    obj.run(obj.repo.delete_transaction, tx)
    click.echo(f"Deleted transaction {transaction_id}.")


@main.command()
@click.option('--search', default='', help='Match description or merchant')
@click.option('--category', default=None, help='Only this category')
@click.pass_obj
def transactions(obj, search, category):
    """List transactions, newest first."""
    txs = obj.run(obj.repo.list_transactions)
    result = filter_transactions(txs, search, category)
    for tx in result.transactions:
        day = date.fromtimestamp(tx.date / 1000).isoformat()
        sign = '+' if tx.type is TransactionType.INCOME else '-'
        click.echo(f"{tx.id}  {day}  {sign}{_fmt(tx.amount):>12}  {tx.category:<16} {tx.description}")
    click.echo(f"Income {_fmt(result.total_income)}  Expenses {_fmt(result.total_expenses)}")


@main.command()
@click.pass_obj
def categories(obj):
    """List categories with spend against their limits."""
    cats = obj.run(obj.repo.list_categories)
    if not cats:
        click.echo("No categories. Run 'budgetbuddy init' to create the defaults.")
        return
    for cat in cats:
        pct = f"{cat.spent / cat.monthly_limit * 100:.0f}%" if cat.monthly_limit > 0 else "-"
        click.echo(
            f"{cat.id}  {cat.name:<16} {_fmt(cat.spent):>12} / {_fmt(cat.monthly_limit):>12}  {pct}"
        )


@main.command('add-category')
@click.argument('name')
@click.option('--limit', 'monthly_limit', default='0', type=AMOUNT,
              help='Monthly limit; 0 disables alerts')
@click.option('--color', default='#85929E', help='Display color')
@click.option('--icon', default='credit_card', help='Icon tag')
@click.pass_obj
def add_category(obj, name, monthly_limit, color, icon):
    """Create a spending category."""
    cat = Category(name=name, monthly_limit=monthly_limit, color=color, icon=icon)
    saved = obj.run(obj.repo.add_category, cat)
    click.echo(f"Added category {saved.name} ({saved.id}).")


@main.command('delete-category')
@click.argument('category_id')
@click.pass_obj
def delete_category(obj, category_id):
    """Delete a category and its alerts."""
    cat = obj.run(obj.repo.get_category, category_id)
    if cat is None:
        raise click.ClickException(f"No category with id {category_id}")
    obj.run(obj.repo.delete_category, cat)
    click.echo(f"Deleted category {cat.name}.")


@main.command('set-budget')
@click.argument('amount', type=AMOUNT)
@click.option('--month', type=click.IntRange(1, 12), default=None,
              help='Calendar month 1-12 (default: current)')
@click.option('--year', type=int, default=None, help='Year (default: current)')
@click.pass_obj
def set_budget(obj, amount, month, year):
    """Set the total budget for a month."""
    today = date.today()
    budget = Budget(
        total_monthly_budget=amount,
        month=(month or today.month) - 1,
        year=year or today.year,
    )
    saved = obj.run(obj.repo.set_budget, budget)
    click.echo(f"Budget for {saved.year}-{saved.month + 1:02d} set to {_fmt(saved.total_monthly_budget)}.")


@main.command()
@click.pass_obj
def summary(obj):
    """Show income, expenses and budget usage."""
    s = obj.run(obj.repo.financial_summary)
    cats = obj.run(obj.repo.list_categories)
    budget = obj.run(obj.repo.get_current_month_budget)
    overview = budget_overview(cats, budget, Decimal(str(obj.config['default_monthly_budget'])))
    click.echo(f"Total income:     {_fmt(s.total_income)}")
    click.echo(f"Total expenses:   {_fmt(s.total_expenses)}")
    click.echo(f"Net income:       {_fmt(s.net_income)}")
    click.echo(f"Savings rate:     {s.savings_rate:.1f}%")
    click.echo(f"Avg daily spend:  {_fmt(s.avg_daily_spend)}")
    click.echo(f"Budget used:      {s.budget_used_percentage:.1f}%")
    click.echo(f"Over budget:      {overview.categories_over_budget} of {len(cats)} categories")


@main.command()
@click.option('--unread', is_flag=True, default=False, help='Only unread alerts')
@click.pass_obj
def alerts(obj, unread):
    """List budget alerts, newest first."""
    items = obj.run(obj.repo.list_alerts, unread)
    if not items:
        click.echo("No alerts.")
    for alert in items:
        marker = ' ' if alert.is_read else '*'
        click.echo(f"{marker} {alert.id}  [{alert.type.value}] {alert.message}")


@main.command('mark-read')
@click.argument('alert_id')
@click.pass_obj
def mark_read(obj, alert_id):
    """Mark an alert as read."""
    obj.run(obj.repo.mark_alert_as_read, alert_id)
    click.echo(f"Marked alert {alert_id} as read.")


@main.command('reset-month')
@click.confirmation_option(prompt='Delete all transactions and zero category spend?')
@click.pass_obj
def reset_month(obj):
    """Remove every transaction and reset category spend to zero."""
    obj.run(obj.repo.reset_monthly_transactions)
    click.echo("Month reset.")


@main.command('parse-sms')
@click.argument('message')
@click.option('--sender', default=None, help='SMS sender id, e.g. VM-HDFCBK')
@click.option('--save', is_flag=True, default=False, help='Store the parsed transaction')
@click.pass_obj
def parse_sms(obj, message, sender, save):
    """Parse a bank SMS and suggest a category."""
    candidate = parse_transaction(message, sender)
    if candidate is None:
        raise click.ClickException("No transaction amount found in message.")
    category = suggest_category(candidate.merchant, candidate.raw_message)
    click.echo(f"Amount:   {_fmt(candidate.amount)}")
    click.echo(f"Type:     {candidate.type.value}")
    click.echo(f"Merchant: {candidate.merchant or '-'}")
    click.echo(f"Bank:     {candidate.bank_name or '-'}")
    click.echo(f"Category: {category}")
    if save:
        saved = obj.run(obj.repo.add_transaction, to_transaction(candidate, category))
        click.echo(f"Saved transaction {saved.id}.")


@main.command('import-sms')
@click.argument('export_file', type=click.Path(exists=True, dir_okay=False))
@click.option('--save', is_flag=True, default=False,
              help='Store every detected transaction (default: only list them)')
@click.pass_obj
def import_sms(obj, export_file, save):
    """Detect transactions in an exported SMS inbox CSV."""
    candidates = list(SMSExportLoader().load(export_file))
    for c in candidates:
        category = suggest_category(c.merchant, c.raw_message)
        click.echo(f"{c.type.value:<8} {_fmt(c.amount):>12}  {c.merchant or '-':<20} {category}")
        if save:
            obj.run(obj.repo.add_transaction, to_transaction(c, category))
    verb = "Stored" if save else "Found"
    click.echo(f"{verb} {len(candidates)} transaction(s) in {export_file}.")
