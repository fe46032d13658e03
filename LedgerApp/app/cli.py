import click

import LedgerApp.app.common as common
from LedgerApp.app import app
from LedgerApp.app.import_accounts import import_accounts
from LedgerApp.app.services.expense_classification import backfill_expense_categories
from LedgerApp.app.services.income_statement import EXPENSE_TYPES


@app.cli.command("import-accounts")
@click.argument("csv_path", type=click.Path(exists=True, dir_okay=False))
def import_accounts_command(csv_path):
    """Import a chart of accounts from CSV_PATH."""
    result = import_accounts(csv_path)
    click.echo(
        f"Created {len(result['created'])}, skipped {len(result['skipped'])} existing, "
        f"{len(result['failed'])} without parent"
    )


@app.cli.command("backfill-expense-categories")
def backfill_expense_categories_command():
    """Store the name-based expense bucket on expense accounts that have none."""
    result = backfill_expense_categories(EXPENSE_TYPES)
    click.echo(f"Updated {len(result['updated'])} accounts")
    for item in result["ambiguous"]:
        click.echo(f"  review {item['code']} {item['name']}: matches {', '.join(item['matches'])}", err=True)
    common.logger.debug("Expense category backfill finished")
