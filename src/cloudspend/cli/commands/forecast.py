import json

import click
from rich.table import Table

from ...analysis.trend_forecasting import CostForecaster, ForecastStrategy, TrendAnalyzer
from ..inputs import load_inputs


@click.command()
@click.option('--input', '-i', 'input_file', type=click.Path(exists=True, dir_okay=False),
              help='JSON or YAML analysis document')
@click.option('--csv', 'csv_file', type=click.Path(exists=True, dir_okay=False),
              help='CSV file with a daily cost series')
@click.option('--horizon', type=int, help='Days to forecast')
@click.option('--strategy', '-s', type=click.Choice([s.value for s in ForecastStrategy]),
              help='Forecasting method')
@click.option('--days', default=90, show_default=True, help='Days of sample data when no input is given')
@click.option('--output', '-o', type=click.Path(), help='Output file for results')
@click.option('--format', '-f', type=click.Choice(['json', 'table']), default='table', help='Output format')
@click.pass_context
def forecast(ctx, input_file, csv_file, horizon, strategy, days, output, format):
    """
    Analyze the cost trend and forecast future daily costs

    Examples:
        cloudspend forecast --horizon 14 --strategy linear_regression
    """
    console = ctx.obj['console']
    analytics = ctx.obj['settings'].analytics

    inputs = load_inputs(input_file, csv_file, days=days)
    trend = TrendAnalyzer(analytics.trend_min_points, analytics.error_multiplier).analyze(inputs.daily_costs)
    result = CostForecaster(strategy or analytics.forecast_strategy).forecast(
        inputs.daily_costs, horizon or analytics.forecast_horizon_days
    )

    if format == 'json':
        text = json.dumps({'trend': trend.to_dict(), 'forecast': result.to_dict()}, indent=2)
        if output:
            with open(output, 'w') as f:
                f.write(text)
            console.print(f"✓ Results saved to [green]{output}[/green]")
        else:
            click.echo(text)
        return

    if not trend.is_sufficient:
        console.print(f"[yellow]Not enough data for trend analysis ({trend.data_points} days)[/yellow]")
    else:
        console.print(f"\nTrend: [bold]{trend.direction.value}[/bold] ({trend.trend_percentage:+.2f}%/day)  "
                      f"Average daily: ${trend.average_daily:,.2f}  "
                      f"Projected monthly: ${trend.projected_monthly:,.2f}")

    if result.is_empty:
        console.print("[yellow]Not enough history to forecast[/yellow]")
        return

    table = Table(title=f"Cost Forecast ({result.strategy.value}, confidence {result.confidence_level.value})",
                  show_header=True, header_style="bold cyan")
    table.add_column("Date", style="dim")
    table.add_column("Predicted", justify="right", style="green")
    table.add_column("Low", justify="right")
    table.add_column("High", justify="right")
    table.add_column("Confidence", justify="right", style="blue")

    for point in result.points:
        table.add_row(
            point.date.isoformat(),
            f"${point.predicted:,.2f}",
            f"${point.lower_bound:,.2f}",
            f"${point.upper_bound:,.2f}",
            f"{point.confidence:.0%}",
        )

    console.print(table)
    console.print(f"Total forecast: [bold yellow]${result.total_forecast:,.2f}[/bold yellow]")
