"""
Main CLI entry point for the Loan Risk Engine.

Usage:
    loan-risk overview --input loans.csv
    loan-risk rates --input loans.csv --by employment_status --outcome Paid
    loan-risk means --input loans.csv --by education_level --of credit_score
    loan-risk risk-matrix --input loans.csv
    loan-risk correlation --input loans.csv --linkage average
    loan-risk run --input loans.csv
    loan-risk synthesize --rows 20000 --output loans.csv

Analysis commands print JSON to stdout for a rendering layer.
"""

import json
import logging
import math
from datetime import datetime, timezone
from typing import Any, Optional, Tuple

import click
import numpy as np
import pandas as pd

from . import __version__
from .aggregate.rate_aggregator import RateAggregator, Reduction
from .config import LINKAGE_METHODS, AnalysisConfig
from .correlate.correlation_builder import CorrelationBuilder
from .errors import RiskEngineError
from .ingest.loader import ApplicantLoader, ApplicantTable
from .synthetic.generator import ApplicantGenerator, ApplicantGeneratorConfig

logger = logging.getLogger(__name__)


def convert_for_json(obj: Any) -> Any:
    """Convert objects to JSON-serializable types, including numpy types and NaN."""
    if isinstance(obj, dict):
        return {str(k): convert_for_json(v) for k, v in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [convert_for_json(item) for item in obj]
    elif isinstance(obj, np.ndarray):
        return convert_for_json(obj.tolist())
    elif isinstance(obj, np.bool_):
        return bool(obj)
    elif isinstance(obj, np.integer):
        return int(obj)
    elif isinstance(obj, (float, np.floating)):
        return None if math.isnan(obj) else float(obj)
    else:
        return obj


class EngineContext:
    """Holds configuration shared by CLI commands."""

    def __init__(self):
        self.config = AnalysisConfig()
        self.source: Optional[str] = None

    def load(self, input_path: str) -> ApplicantTable:
        loader = ApplicantLoader(self.config)
        try:
            table = loader.load(input_path)
        except RiskEngineError as e:
            raise click.UsageError(str(e))
        except (pd.errors.EmptyDataError, pd.errors.ParserError, UnicodeDecodeError) as e:
            raise click.ClickException(f"Cannot read {input_path}: {e}")
        self.source = loader.loaded_file
        for warning in loader.validation.warnings:
            click.echo(f"Warning: {warning}", err=True)
        return table


pass_context = click.make_pass_decorator(EngineContext, ensure=True)


def _emit(payload: Any) -> None:
    click.echo(json.dumps(convert_for_json(payload), indent=2))


input_option = click.option(
    '--input', '-i', 'input_path', required=True, type=click.Path(exists=True, dir_okay=False),
    help='Applicant CSV file'
)


@click.group()
@click.version_option(version=__version__)
@click.option('--outcome-column', default=None, help='Column holding the 0/1 repayment outcome')
@click.option('--log-level', type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR']),
              default='WARNING', help='Logging verbosity (logs go to stderr)')
@click.pass_context
def cli(ctx, outcome_column: Optional[str], log_level: str):
    """Loan Risk Engine

    Aggregates default and repayment rates across applicant attributes
    and builds a clustered correlation matrix of numeric attributes.
    """
    logging.basicConfig(
        level=getattr(logging, log_level),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )
    ctx.ensure_object(EngineContext)
    ctx.obj.config = ctx.obj.config.with_overrides(outcome_column=outcome_column)


@cli.command()
@input_option
@pass_context
def overview(ctx, input_path: str):
    """Show table dimensions, missing values and the outcome distribution."""
    table = ctx.load(input_path)
    aggregator = RateAggregator(ctx.config)
    _emit({
        'overview': table.overview(),
        'outcome_distribution': aggregator.outcome_distribution(table).to_dict(),
    })


@cli.command()
@input_option
@click.option('--by', '-b', 'by', multiple=True, required=True,
              help='Categorical column to group by (repeat for two)')
@click.option('--outcome', default='Paid', show_default=True,
              help='Outcome label whose rate is computed')
@pass_context
def rates(ctx, input_path: str, by: Tuple[str, ...], outcome: str):
    """Outcome rate per group."""
    table = ctx.load(input_path)
    try:
        result = RateAggregator(ctx.config).aggregate(table, list(by), Reduction.rate(outcome))
    except RiskEngineError as e:
        raise click.UsageError(str(e))
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint='--by')
    _emit(result.to_dict())


@cli.command()
@input_option
@click.option('--by', '-b', 'by', multiple=True, required=True,
              help='Categorical column to group by (repeat for two)')
@click.option('--of', 'numeric_attribute', default='credit_score', show_default=True,
              help='Numeric column to average')
@pass_context
def means(ctx, input_path: str, by: Tuple[str, ...], numeric_attribute: str):
    """Mean of a numeric column per group."""
    table = ctx.load(input_path)
    try:
        result = RateAggregator(ctx.config).aggregate(table, list(by), Reduction.mean(numeric_attribute))
    except RiskEngineError as e:
        raise click.UsageError(str(e))
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint='--by')
    _emit(result.to_dict())


@cli.command('risk-matrix')
@input_option
@click.option('--rows', default=None, help='Row dimension (default: employment_status)')
@click.option('--columns', default=None, help='Column dimension (default: marital_status)')
@pass_context
def risk_matrix(ctx, input_path: str, rows: Optional[str], columns: Optional[str]):
    """Default rate for every observed pair of two categorical columns."""
    dims = list(ctx.config.risk_matrix_dimensions)
    try:
        config = ctx.config.with_overrides(risk_matrix_dimensions=[rows or dims[0], columns or dims[1]])
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint='--rows/--columns')
    table = ctx.load(input_path)
    try:
        result = RateAggregator(config).risk_matrix(table)
    except RiskEngineError as e:
        raise click.UsageError(str(e))
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint='--rows/--columns')
    _emit(result.to_dict())


@cli.command()
@input_option
@click.option('--exclude', '-x', multiple=True,
              help='Numeric column to leave out (repeat; replaces the default list)')
@click.option('--linkage', 'linkage_method', type=click.Choice(LINKAGE_METHODS), default=None,
              help='Hierarchical clustering linkage for the matrix order')
@click.option('--threshold', type=float, default=None,
              help='Also list pairs with |r| at or above this value')
@click.option('--strict', is_flag=True, help='Fail when an excluded column is missing')
@pass_context
def correlation(ctx, input_path: str, exclude: Tuple[str, ...], linkage_method: Optional[str],
                threshold: Optional[float], strict: bool):
    """Clustered correlation matrix of numeric columns."""
    table = ctx.load(input_path)
    builder = CorrelationBuilder(
        excluded=list(exclude) if exclude else None,
        linkage_method=linkage_method,
        strict=strict,
        config=ctx.config,
    )
    try:
        matrix = builder.build(table)
    except RiskEngineError as e:
        raise click.UsageError(str(e))

    payload = matrix.to_dict()
    if threshold is not None:
        payload['strong_pairs'] = [
            {'row': r, 'column': c, 'value': v} for r, c, v in matrix.strong_pairs(threshold)
        ]
    _emit(payload)


@cli.command()
@input_option
@click.option('--threshold', type=float, default=0.8, show_default=True,
              help='|r| threshold for the strong-pairs listing')
@pass_context
def run(ctx, input_path: str, threshold: float):
    """Run every analysis and print one JSON document.

    Sections:
    - overview                  - dimensions and missing values
    - outcome_distribution      - applicants per outcome
    - repayment_by_employment   - rate(Paid) by employment status
    - credit_score_by_education - mean credit score by education level
    - credit_score_by_outcome   - credit score spread per outcome
    - credit_score_by_marital_gender - spread per marital status and gender
    - risk_matrix               - rate(Default) by employment x marital status
    - correlation               - clustered correlation matrix
    """
    config = ctx.config
    table = ctx.load(input_path)
    aggregator = RateAggregator(config)
    builder = CorrelationBuilder(config=config)

    try:
        matrix = builder.build(table)
        document = {
            'metadata': {
                'generated_at': datetime.now(timezone.utc).isoformat(),
                'source': ctx.source,
                'version': __version__,
                'config': config.to_dict(),
            },
            'overview': table.overview(),
            'outcome_distribution': aggregator.outcome_distribution(table).to_dict(),
            'repayment_by_employment': aggregator.repayment_rate_by(table, 'employment_status').to_dict(),
            'credit_score_by_education': aggregator.average_by(
                table, 'education_level', 'credit_score').to_dict(),
            'credit_score_by_outcome': aggregator.spread_by(
                table, [table.outcome_column], 'credit_score').to_dict(),
            'credit_score_by_marital_gender': aggregator.spread_by(
                table, ['marital_status', 'gender'], 'credit_score').to_dict(),
            'risk_matrix': aggregator.risk_matrix(table).to_dict(),
            'correlation': matrix.to_dict(),
        }
    except RiskEngineError as e:
        raise click.UsageError(str(e))

    document['correlation']['strong_pairs'] = [
        {'row': r, 'column': c, 'value': v} for r, c, v in matrix.strong_pairs(threshold)
    ]
    _emit(document)


@cli.command()
@click.option('--rows', '-n', default=20000, show_default=True, type=click.IntRange(min=1),
              help='Number of applicants to generate')
@click.option('--seed', default=None, type=int, help='Random seed (default: config seed)')
@click.option('--output', '-o', required=True, type=click.Path(dir_okay=False),
              help='CSV file to write')
@pass_context
def synthesize(ctx, rows: int, seed: Optional[int], output: str):
    """Write a synthetic applicant CSV."""
    seed = ctx.config.random_seed if seed is None else seed
    generator = ApplicantGenerator(ApplicantGeneratorConfig(seed=seed, num_applicants=rows))
    path = generator.save(generator.generate(), output)
    click.echo(f"Wrote {rows} applicants to {path}", err=True)


def main():
    """Main entry point."""
    cli()


if __name__ == '__main__':
    main()
