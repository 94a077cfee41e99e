import json
import time

import click
from rich.table import Table

from ...alerts.monitor import CostMonitor, InMemoryCostRepository
from ...alerts.scheduler import TaskScheduler, schedule_cost_monitoring
from ...alerts.service import AlertService
from ...core.monitoring import MetricsCollector
from ..inputs import load_inputs


@click.command()
@click.option('--input', '-i', 'input_file', type=click.Path(exists=True, dir_okay=False),
              help='JSON or YAML document with budgets and cost records')
@click.option('--records', 'records_file', type=click.Path(exists=True, dir_okay=False),
              help='CSV file with billed cost records')
@click.option('--once', is_flag=True, help='Run budget check and spike detection once and exit')
@click.option('--summary', is_flag=True, help='Also send the daily summary (with --once)')
@click.option('--output', '-o', type=click.Path(), help='Output file for results (with --once)')
@click.option('--format', '-f', type=click.Choice(['json', 'table']), default='table', help='Output format')
@click.pass_context
def monitor(ctx, input_file, records_file, once, summary, output, format):
    """
    Monitor budgets and cost spikes and send alerts

    Without --once the scheduler keeps running: budget checks hourly, spike
    detection every 30 minutes and the daily summary at 09:00 by default.

    Examples:
        cloudspend monitor --input budgets.yaml --records costs.csv --once
    """
    console = ctx.obj['console']
    settings = ctx.obj['settings']

    inputs = load_inputs(input_file, records_file=records_file)
    metrics = MetricsCollector()
    cost_monitor = CostMonitor(
        repository=InMemoryCostRepository(inputs.cost_records),
        alert_service=AlertService.from_config(settings.notifications, metrics=metrics),
        config=settings.scheduler,
    )

    if once:
        results = cost_monitor.run_monitoring(inputs.budgets)
        if summary:
            results['daily_summary'] = cost_monitor.send_daily_summary(inputs.budgets)

        if format == 'json':
            text = json.dumps({
                'results': {name: result.to_dict() for name, result in results.items()},
                'budgets': [b.to_dict() for b in inputs.budgets],
            }, indent=2)
            if output:
                with open(output, 'w') as f:
                    f.write(text)
                console.print(f"✓ Results saved to [green]{output}[/green]")
            else:
                click.echo(text)
        else:
            _display_results(console, results, inputs.budgets)

        if not all(result.success for result in results.values()):
            ctx.exit(1)
        return

    scheduler = TaskScheduler(metrics=metrics)
    schedule_cost_monitoring(scheduler, cost_monitor, inputs.budgets, settings.scheduler)
    scheduler.start(misfire_grace_seconds=settings.scheduler.misfire_grace_seconds)
    console.print("[bold green]Cost monitoring started.[/bold green] Press Ctrl+C to stop.")

    try:
        while scheduler.running:
            time.sleep(1)
    except KeyboardInterrupt:
        console.print("\nStopping monitoring...")
    finally:
        scheduler.stop()
        console.print(metrics.export_prometheus())


def _display_results(console, results, budgets):
    table = Table(title="Monitoring Results", show_header=True, header_style="bold cyan")
    table.add_column("Task", style="cyan")
    table.add_column("Status", justify="center")
    table.add_column("Alerts Sent", justify="right")
    table.add_column("Error", style="red")

    for name, result in results.items():
        status = "[green]OK[/green]" if result.success else "[red]FAILED[/red]"
        table.add_row(name.replace('_', ' ').capitalize(), status, str(result.alerts_sent), result.error or "")
    console.print(table)

    if budgets:
        budget_table = Table(title="Budgets", show_header=True, header_style="bold cyan")
        budget_table.add_column("Budget", style="cyan")
        budget_table.add_column("Period")
        budget_table.add_column("Amount", justify="right")
        budget_table.add_column("Spend", justify="right", style="green")
        budget_table.add_column("Used", justify="right")
        budget_table.add_column("Status", justify="center")
        for budget in budgets:
            color = 'red' if budget.status.value == 'exceeded' else 'green'
            budget_table.add_row(
                budget.name,
                budget.period.value,
                f"${budget.amount:,.2f}",
                f"${budget.actual_spend:,.2f}",
                f"{budget.percent_used:.1f}%",
                f"[{color}]{budget.status.value.upper()}[/{color}]",
            )
        console.print(budget_table)
