"""
Main CLI entry point for AdCompliance
"""

import logging

import click

from ..core.observability import setup_logfire
from .compliance import analyze_ad, describe_pipeline_command, domain_summary, stale_ads, usage_report


@click.group()
@click.version_option(version='0.1.0')
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
def cli(verbose: bool):
    """
    AdCompliance - Ad creative & landing page compliance analysis

    Judge scraped ads against advertising rules and keep verdicts fresh.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )
    setup_logfire()


cli.add_command(analyze_ad)
cli.add_command(stale_ads)
cli.add_command(domain_summary)
cli.add_command(describe_pipeline_command)
cli.add_command(usage_report)


if __name__ == '__main__':
    cli()
