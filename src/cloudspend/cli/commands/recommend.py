import json

import click
from rich.panel import Panel
from rich.table import Table

from ...analysis.recommendations import RecommendationEngine, analyze_tags, calculate_savings_potential
from ..inputs import load_inputs

PRIORITY_COLORS = {
    'high': 'orange1',
    'medium': 'yellow',
    'low': 'green',
}


@click.command()
@click.option('--input', '-i', 'input_file', type=click.Path(exists=True, dir_okay=False),
              help='JSON or YAML analysis document')
@click.option('--threshold', default=0.0, help='Minimum savings threshold (USD/month)')
@click.option('--opportunities', is_flag=True, help='Show the quick opportunity set instead')
@click.option('--tags', 'show_tags', is_flag=True, help='Also show cost by resource tag')
@click.option('--output', '-o', type=click.Path(), help='Output file for results')
@click.option('--format', '-f', type=click.Choice(['json', 'table']), default='table', help='Output format')
@click.pass_context
def recommend(ctx, input_file, threshold, opportunities, show_tags, output, format):
    """
    Generate cost optimization recommendations for services and resources

    Examples:
        cloudspend recommend --input costs.yaml --threshold 50
    """
    console = ctx.obj['console']
    engine = RecommendationEngine(ctx.obj['settings'].recommendations)

    inputs = load_inputs(input_file)
    if opportunities:
        results = engine.identify_opportunities(inputs.service_costs, inputs.resources)
    else:
        results = engine.generate(inputs.service_costs, inputs.resources)
    results = [r for r in results if r.estimated_savings >= threshold]
    potential = calculate_savings_potential(results)

    if format == 'json':
        payload = {
            'recommendations': [r.to_dict() for r in results],
            'savings_potential': potential.to_dict(),
        }
        if show_tags:
            payload['tags'] = [t.to_dict() for t in analyze_tags(inputs.resources)]
        text = json.dumps(payload, indent=2)
        if output:
            with open(output, 'w') as f:
                f.write(text)
            console.print(f"✓ Results saved to [green]{output}[/green]")
        else:
            click.echo(text)
        return

    table = Table(title="Optimization Recommendations", show_header=True, header_style="bold cyan")
    table.add_column("Category", style="cyan")
    table.add_column("Title", style="white")
    table.add_column("Monthly Savings", justify="right", style="green")
    table.add_column("Priority", justify="center")
    table.add_column("Confidence", justify="right", style="blue")

    for rec in results:
        color = PRIORITY_COLORS.get(rec.priority.value, 'white')
        table.add_row(
            rec.category.value.replace('_', ' ').capitalize(),
            rec.title,
            f"${rec.estimated_savings:,.2f}",
            f"[{color}]{rec.priority.value.upper()}[/{color}]",
            f"{rec.confidence:.0f}%",
        )
    console.print(table)

    if show_tags:
        for summary in analyze_tags(inputs.resources):
            values = ", ".join(f"{v.value} (${v.cost:,.2f})" for v in summary.values)
            console.print(f"[cyan]{summary.tag}[/cyan]: {values}")

    summary_text = f"""Recommendations: [bold]{potential.count}[/bold]
Monthly Savings: [bold yellow]${potential.total:,.2f}[/bold yellow]
Annual Savings: [bold yellow]${potential.total * 12:,.2f}[/bold yellow]

By Priority:
  High: [orange1]${potential.by_priority['high']:,.2f}[/orange1]
  Medium: [yellow]${potential.by_priority['medium']:,.2f}[/yellow]
  Low: [green]${potential.by_priority['low']:,.2f}[/green]"""
    console.print(Panel(summary_text, title="Savings Potential", border_style="green"))
