import json

import click
from rich.panel import Panel
from rich.table import Table

from ...analysis.anomaly_detection import AnomalyDetector, CostSpikeDetector, run_full_analysis
from ...analysis.cost_overview import build_cost_overview, compare_trailing_periods
from ...analysis.insights import InsightsAggregator
from ...analysis.recommendations import RecommendationEngine
from ...analysis.trend_forecasting import CostForecaster, TrendAnalyzer
from ...core.logging import get_performance_logger
from ..inputs import load_inputs


@click.command()
@click.option('--input', '-i', 'input_file', type=click.Path(exists=True, dir_okay=False),
              help='JSON or YAML analysis document')
@click.option('--csv', 'csv_file', type=click.Path(exists=True, dir_okay=False),
              help='CSV file with a daily cost series')
@click.option('--days', default=90, show_default=True, help='Days of sample data when no input is given')
@click.option('--compare-days', type=click.IntRange(min=1), default=7, show_default=True,
              help='Compare the last N days with the N days before them')
@click.option('--output', '-o', type=click.Path(), help='Output file for analysis results')
@click.option('--format', '-f', type=click.Choice(['json', 'table']), default='table', help='Output format')
@click.pass_context
def analyze(ctx, input_file, csv_file, days, compare_days, output, format):
    """
    Run the full cost analysis: overview, anomalies, trend, forecast and recommendations

    Examples:
        cloudspend analyze --input costs.yaml
        cloudspend analyze --csv daily.csv --format json -o report.json
    """
    console = ctx.obj['console']
    settings = ctx.obj['settings']
    analytics = settings.analytics

    inputs = load_inputs(input_file, csv_file, days=days)
    if not inputs.daily_costs:
        raise click.ClickException("No daily cost data to analyze")

    detector = AnomalyDetector(analytics.error_multiplier, analytics.warning_multiplier, analytics.anomaly_period)
    aggregator = InsightsAggregator(
        engine=RecommendationEngine(settings.recommendations),
        trend_analyzer=TrendAnalyzer(analytics.trend_min_points, analytics.error_multiplier),
        forecaster=CostForecaster(analytics.forecast_strategy),
        detector=detector,
        forecast_days=analytics.forecast_horizon_days,
    )

    with get_performance_logger().timer("analyze"):
        overview = build_cost_overview(inputs.daily_costs)
        comparison = compare_trailing_periods(inputs.daily_costs, compare_days)
        insights = aggregator.generate(inputs.snapshot(), inputs.resources, inputs.daily_costs)
        full = run_full_analysis(
            inputs.daily_costs,
            period=analytics.anomaly_period,
            detector=detector,
            spike_detector=CostSpikeDetector(analytics.spike_lookback_days, analytics.spike_threshold_percent),
            window=analytics.moving_average_window,
        )

    results = {
        'overview': overview.to_dict(),
        'comparison': comparison.to_dict() if comparison else None,
        'insights': insights.to_dict(),
        'analysis': full.to_dict(),
    }

    if format == 'json' or output:
        text = json.dumps(results, indent=2, default=str)
        if output:
            with open(output, 'w') as f:
                f.write(text)
            console.print(f"✓ Results saved to [green]{output}[/green]")
        else:
            click.echo(text)
        if format == 'json':
            return

    _display_overview(console, overview)
    if comparison:
        console.print(f"Last {compare_days} days vs previous {compare_days}: {comparison.insight}")
    summary = full.summary()
    summary_text = f"""{insights.narrative()}

Health: [bold]{summary['overall_health'].upper()}[/bold] ({summary['health_score']}/100)
Anomalies: [bold]{summary['total_anomalies']}[/bold]  Spikes: [bold]{summary['total_spikes']}[/bold]  Critical issues: [red]{summary['critical_issues']}[/red]
Recommendations: [bold]{len(insights.recommendations)}[/bold]
Potential monthly savings: [bold yellow]${insights.savings_potential.total:,.2f}[/bold yellow]"""

    console.print(Panel(summary_text, title="Analysis Summary", border_style="green"))


def _display_overview(console, overview):
    table = Table(title=f"Cost Overview ({overview.period} days)", show_header=True, header_style="bold cyan")
    table.add_column("Provider", style="cyan")
    table.add_column("Total", justify="right", style="green")
    table.add_column("Share", justify="right")

    for share in overview.by_provider:
        table.add_row(share.name, f"${share.total:,.2f}", f"{share.percentage}%")

    table.add_row("[bold]Total[/bold]", f"[bold]${overview.total_cost:,.2f}[/bold]", "")
    console.print(table)
    console.print(f"Average daily cost: [bold]${overview.average_daily:,.2f}[/bold]")
