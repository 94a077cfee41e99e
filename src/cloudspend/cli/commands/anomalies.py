import json

import click
from rich.table import Table

from ...analysis.anomaly_detection import AnomalyDetector, CostSpikeDetector, run_full_analysis
from ..inputs import load_inputs


@click.command()
@click.option('--input', '-i', 'input_file', type=click.Path(exists=True, dir_okay=False),
              help='JSON or YAML analysis document')
@click.option('--csv', 'csv_file', type=click.Path(exists=True, dir_okay=False),
              help='CSV file with a daily cost series')
@click.option('--period', '-p', type=click.IntRange(min=1), help='Trailing days to analyze')
@click.option('--days', default=90, show_default=True, help='Days of sample data when no input is given')
@click.option('--output', '-o', type=click.Path(), help='Output file for results')
@click.option('--format', '-f', type=click.Choice(['json', 'table']), default='table', help='Output format')
@click.pass_context
def anomalies(ctx, input_file, csv_file, period, days, output, format):
    """
    Detect cost anomalies and spikes in a daily cost series

    Examples:
        cloudspend anomalies --csv daily.csv --period 60
    """
    console = ctx.obj['console']
    analytics = ctx.obj['settings'].analytics
    period = period or analytics.anomaly_period

    inputs = load_inputs(input_file, csv_file, days=days)
    result = run_full_analysis(
        inputs.daily_costs,
        period=period,
        detector=AnomalyDetector(analytics.error_multiplier, analytics.warning_multiplier, period),
        spike_detector=CostSpikeDetector(analytics.spike_lookback_days, analytics.spike_threshold_percent),
        window=analytics.moving_average_window,
    )

    if format == 'json':
        text = json.dumps(result.to_dict(), indent=2)
        if output:
            with open(output, 'w') as f:
                f.write(text)
            console.print(f"✓ Results saved to [green]{output}[/green]")
        else:
            click.echo(text)
        return

    report = result.anomaly_detection
    stats = report.statistics
    console.print(f"\n[bold]Anomaly Detection[/bold] (last {period} days)")
    console.print(f"Mean: ${stats.mean:,.2f}  Std dev: ${stats.std_dev:,.2f}  "
                  f"Threshold: ${report.error_threshold:,.2f}  Health: {report.health_score}/100")

    table = Table(title="Anomalies and Warnings", show_header=True, header_style="bold cyan")
    table.add_column("Date", style="dim")
    table.add_column("Severity", justify="center")
    table.add_column("Actual", justify="right", style="green")
    table.add_column("Expected", justify="right")
    table.add_column("Z-score", justify="right", style="blue")
    table.add_column("Deviation", justify="right")

    for record in report.anomalies + report.warnings:
        color = 'red' if record.severity.value == 'error' else 'yellow'
        table.add_row(
            record.date.isoformat(),
            f"[{color}]{record.severity.value.upper()}[/{color}]",
            f"${record.actual_cost:,.2f}",
            f"${record.expected_cost:,.2f}",
            f"{record.z_score:.2f}",
            f"{record.deviation_percent:.1f}%",
        )
    console.print(table)

    spikes = result.spike_detection
    if spikes.spikes:
        spike_table = Table(title="Cost Spikes", show_header=True, header_style="bold cyan")
        spike_table.add_column("Date", style="dim")
        spike_table.add_column("Severity", justify="center")
        spike_table.add_column("Cost", justify="right", style="green")
        spike_table.add_column("Average", justify="right")
        spike_table.add_column("Increase", justify="right", style="red")
        for spike in spikes.spikes:
            spike_table.add_row(
                spike.date.isoformat(),
                spike.severity.value.upper(),
                f"${spike.current_cost:,.2f}",
                f"${spike.average_cost:,.2f}",
                f"{spike.increase_percent:.1f}%",
            )
        console.print(spike_table)
    else:
        console.print("[green]No cost spikes detected[/green]")
