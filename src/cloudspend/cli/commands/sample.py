import json
from datetime import datetime

import click
import yaml

from ..inputs import sample_inputs


@click.command()
@click.option('--output', '-o', type=click.Path(dir_okay=False), required=True,
              help='File to write (.json, .yaml or .yml)')
@click.option('--days', default=90, show_default=True, help='Days of daily cost history')
@click.option('--seed', default=42, show_default=True, help='Random seed')
@click.option('--end-date', type=click.DateTime(formats=['%Y-%m-%d']), help='Last day of the generated data')
@click.pass_context
def sample(ctx, output, days, seed, end_date):
    """
    Generate a synthetic analysis document

    Examples:
        cloudspend sample -o sample.yaml --days 60
    """
    console = ctx.obj['console']
    end = end_date.date() if isinstance(end_date, datetime) else None

    document = sample_inputs(days, seed, end).to_document()

    with open(output, 'w') as f:
        if output.endswith(('.yaml', '.yml')):
            yaml.safe_dump(document, f, default_flow_style=False, sort_keys=False)
        else:
            json.dump(document, f, indent=2)

    console.print(f"✓ Sample data with {days} days written to [green]{output}[/green]")
