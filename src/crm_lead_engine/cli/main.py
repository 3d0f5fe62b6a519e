"""Main CLI entry point for the crmlead command."""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Tuple

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..core.config import EngineConfigManager
from ..core.exceptions import EmptyInputError, LeadEngineError
from ..reporting.campaign_attribution import attribute_campaign_to_lead
from ..reporting.lead_source_analytics import (
    DateRange,
    calculate_lead_source_analytics,
    compare_source_performance,
)
from ..routing.load_balancing import get_lead_distribution, suggest_rebalancing
from ..routing.router import RuleType, auto_assign_lead
from ..schemas import (
    load_json_file,
    parse_campaign,
    parse_costs,
    parse_leads,
    parse_opportunities,
    parse_rules,
    parse_sales_reps,
)

console = Console()

DATE = click.DateTime(formats=["%Y-%m-%d"])


def _end_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=23, minute=59, second=59, microsecond=999999)


def _fail(error: LeadEngineError):
    """Report an engine error and exit non-zero."""
    console.print(f"[red]Error:[/red] {error}")
    for key, value in error.details.items():
        if key != "errors":
            console.print(f"  [dim]{key}: {value}[/dim]")
    for detail in error.details.get("errors", [])[:5]:
        location = ".".join(str(p) for p in detail.get("loc", ()))
        console.print(f"  [dim]{location}: {detail.get('msg')}[/dim]")
    raise click.exceptions.Exit(1)


def _echo_json(data: Any):
    click.echo(json.dumps(data, indent=2, default=str))


def _fmt(value: Optional[float], suffix: str = "", prefix: str = "") -> str:
    if value is None:
        return "[dim]-[/dim]"
    return f"{prefix}{value:,.1f}{suffix}"


@click.group()
@click.version_option(version="1.0.0", prog_name="crmlead")
@click.option("--config", "config_path", type=click.Path(dir_okay=False),
              help="Custom config file path")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[str], verbose: bool):
    """CRM Lead Engine - lead assignment and lead source analytics.

    \b
    Quick Start:
      crmlead assign lead.json reps.json --rules rules.json
      crmlead analytics leads.json opps.json --from 2025-01-01 --to 2025-03-31
      crmlead rebalance reps.json
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s"
    )
    ctx.ensure_object(dict)
    ctx.obj["config_manager"] = EngineConfigManager(Path(config_path) if config_path else None)


# ============================================================================
# ASSIGNMENT
# ============================================================================

@cli.command()
@click.argument("lead_file", type=click.Path(exists=True, dir_okay=False))
@click.argument("reps_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--rules", "rules_file", type=click.Path(exists=True, dir_okay=False),
              help="Custom assignment rules (JSON list)")
@click.option("--skill", "skills", multiple=True, help="Required skill (repeatable)")
@click.option("--last-index", default=0, show_default=True, help="Round-robin cursor from the previous assignment")
@click.option("--strategy", type=click.Choice([t.value for t in RuleType]),
              help="Preferred strategy (recorded, does not change the cascade)")
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON")
def assign(lead_file: str, reps_file: str, rules_file: Optional[str], skills: Tuple[str, ...],
           last_index: int, strategy: Optional[str], as_json: bool):
    """Pick a sales rep for a lead.

    \b
    Examples:
      crmlead assign lead.json reps.json
      crmlead assign lead.json reps.json --skill enterprise --last-index 3
    """
    try:
        leads = parse_leads(load_json_file(lead_file))
        reps = parse_sales_reps(load_json_file(reps_file))
        rules = parse_rules(load_json_file(rules_file)) if rules_file else None
        if len(leads) != 1:
            raise LeadEngineError("Lead file must contain exactly one lead", {"found": len(leads)})

        result = auto_assign_lead(
            leads[0],
            reps,
            custom_rules=rules,
            required_skills=list(skills),
            last_assigned_index=last_index,
            preferred_strategy=strategy
        )
    except LeadEngineError as e:
        _fail(e)

    if as_json:
        _echo_json(result.to_dict())
        return

    table = Table(title="Assignment Evaluation")
    table.add_column("Stage", style="cyan")
    table.add_column("Matched", justify="center")
    table.add_column("Reason")

    for evaluation in result.all_evaluations:
        table.add_row(
            evaluation.rule_name,
            "[green]✓[/green]" if evaluation.matched else "[dim]✗[/dim]",
            evaluation.reason
        )
    console.print(table)

    if result.assigned:
        console.print(Panel.fit(
            f"[green]✓ Assigned to {result.assigned_to_name}[/green] ({result.assigned_to})\n\n"
            f"Rule: [cyan]{result.rule_applied}[/cyan]\n"
            f"{result.reason}",
            title="Assignment"
        ))
    else:
        console.print(Panel.fit(f"[yellow]Not assigned[/yellow]\n\n{result.reason}", title="Assignment"))


@cli.command()
@click.argument("reps_file", type=click.Path(exists=True, dir_okay=False))
def distribution(reps_file: str):
    """Show how current leads are spread across reps."""
    try:
        reps = parse_sales_reps(load_json_file(reps_file))
    except LeadEngineError as e:
        _fail(e)

    table = Table(title=f"Lead Distribution ({len(reps)} reps)")
    table.add_column("Rep", style="cyan")
    table.add_column("Active", justify="center")
    table.add_column("Leads", justify="right")
    table.add_column("Capacity", justify="right")
    table.add_column("Share", justify="right")
    table.add_column("Load")

    for load in get_lead_distribution(reps):
        table.add_row(
            load.rep.name,
            "✓" if load.rep.is_active else "[dim]✗[/dim]",
            str(load.rep.current_lead_count),
            str(load.rep.max_lead_capacity),
            f"{load.percentage:.1f}%",
            "[red]overloaded[/red]" if load.is_overloaded else "[green]ok[/green]"
        )

    console.print(table)


@cli.command()
@click.argument("reps_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--json", "as_json", is_flag=True, help="Print the plan as JSON")
@click.pass_context
def rebalance(ctx: click.Context, reps_file: str, as_json: bool):
    """Suggest lead moves between overloaded and underloaded reps."""
    engine_config = ctx.obj["config_manager"].config
    try:
        reps = parse_sales_reps(load_json_file(reps_file))
    except LeadEngineError as e:
        _fail(e)

    plan = suggest_rebalancing(reps, engine_config.assignment)

    if as_json:
        _echo_json(plan.to_dict())
        return

    if not plan.should_rebalance:
        console.print(f"[green]✓ {plan.reason}[/green]")
        return

    table = Table(title=plan.reason)
    table.add_column("From", style="red")
    table.add_column("To", style="green")
    table.add_column("Leads", justify="right")
    for suggestion in plan.suggestions:
        table.add_row(suggestion.from_rep, suggestion.to_rep, str(suggestion.lead_count))
    console.print(table)


# ============================================================================
# ANALYTICS
# ============================================================================

def _load_analytics_inputs(leads_file: str, opps_file: str, costs_file: Optional[str]):
    leads = parse_leads(load_json_file(leads_file))
    opportunities = parse_opportunities(load_json_file(opps_file))
    costs = parse_costs(load_json_file(costs_file)) if costs_file else None
    return leads, opportunities, costs


@cli.command()
@click.argument("leads_file", type=click.Path(exists=True, dir_okay=False))
@click.argument("opps_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--from", "date_from", type=DATE, required=True, help="Window start (YYYY-MM-DD)")
@click.option("--to", "date_to", type=DATE, required=True, help="Window end, inclusive (YYYY-MM-DD)")
@click.option("--costs", "costs_file", type=click.Path(exists=True, dir_okay=False),
              help="Spend per lead source (JSON object)")
@click.option("--json", "as_json", is_flag=True, help="Print the report as JSON")
@click.pass_context
def analytics(ctx: click.Context, leads_file: str, opps_file: str, date_from: datetime,
              date_to: datetime, costs_file: Optional[str], as_json: bool):
    """Lead source volume, quality, conversion and ROI report.

    \b
    Examples:
      crmlead analytics leads.json opps.json --from 2025-01-01 --to 2025-03-31
      crmlead analytics leads.json opps.json --from 2025-01-01 --to 2025-03-31 --costs costs.json
    """
    engine_config = ctx.obj["config_manager"].config
    try:
        leads, opportunities, costs = _load_analytics_inputs(leads_file, opps_file, costs_file)
        report = calculate_lead_source_analytics(
            leads,
            opportunities,
            DateRange(date_from, _end_of_day(date_to)),
            costs=costs,
            config=engine_config.analytics
        )
    except LeadEngineError as e:
        _fail(e)

    if as_json:
        _echo_json(report.to_dict())
        return

    table = Table(title=f"Lead Sources {date_from:%Y-%m-%d} → {date_to:%Y-%m-%d}")
    table.add_column("Source", style="cyan")
    table.add_column("Leads", justify="right")
    table.add_column("Growth", justify="right")
    table.add_column("Score", justify="right")
    table.add_column("Qualified", justify="right")
    table.add_column("Won", justify="right")
    table.add_column("Revenue", justify="right")
    table.add_column("CPL", justify="right")
    table.add_column("ROI", justify="right")

    for m in report.metrics:
        table.add_row(
            m.source_name,
            str(m.total_leads),
            _fmt(m.growth_rate, "%"),
            _fmt(m.average_score),
            _fmt(m.qualified_rate, "%"),
            f"{m.opportunities_won}/{m.opportunities_created}",
            _fmt(m.total_revenue, prefix="$"),
            _fmt(m.cost_per_lead, prefix="$"),
            _fmt(m.roi, "%")
        )
    console.print(table)

    top = report.top_performers
    console.print(Panel.fit(
        f"[bold]Volume:[/bold] {top.by_volume.source_name}\n"
        f"[bold]Quality:[/bold] {top.by_quality.source_name}\n"
        f"[bold]Conversion:[/bold] {top.by_conversion.source_name}\n"
        f"[bold]ROI:[/bold] {top.by_roi.source_name if top.by_roi else 'n/a'}",
        title="Top Performers"
    ))

    console.print(Panel("\n".join(report.recommendations), title="Recommendations"))


@cli.command()
@click.argument("leads_file", type=click.Path(exists=True, dir_okay=False))
@click.argument("opps_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--from", "date_from", type=DATE, required=True, help="Current window start")
@click.option("--to", "date_to", type=DATE, required=True, help="Current window end")
@click.option("--previous-from", type=DATE, required=True, help="Previous window start")
@click.option("--previous-to", type=DATE, required=True, help="Previous window end")
@click.option("--costs", "costs_file", type=click.Path(exists=True, dir_okay=False),
              help="Spend per lead source (JSON object)")
@click.pass_context
def compare(ctx: click.Context, leads_file: str, opps_file: str, date_from: datetime, date_to: datetime,
            previous_from: datetime, previous_to: datetime, costs_file: Optional[str]):
    """Compare lead source performance between two periods."""
    engine_config = ctx.obj["config_manager"].config
    try:
        leads, opportunities, costs = _load_analytics_inputs(leads_file, opps_file, costs_file)
        current = calculate_lead_source_analytics(
            leads, opportunities, DateRange(date_from, _end_of_day(date_to)),
            costs=costs, config=engine_config.analytics
        )
        previous_window = DateRange(previous_from, _end_of_day(previous_to))
    except LeadEngineError as e:
        _fail(e)

    try:
        previous_metrics = calculate_lead_source_analytics(
            leads, opportunities, previous_window,
            costs=costs, config=engine_config.analytics
        ).metrics
    except EmptyInputError:
        # Every current source counts as new
        previous_metrics = []

    table = Table(title="Period Comparison")
    table.add_column("Source", style="cyan")
    table.add_column("Volume", justify="right")
    table.add_column("Quality", justify="right")
    table.add_column("Conversion", justify="right")
    table.add_column("Revenue", justify="right")

    for change in compare_source_performance(current.metrics, previous_metrics):
        table.add_row(
            change.source_name,
            f"{change.volume_change:+.1f}%",
            f"{change.quality_change:+.1f}",
            f"{change.conversion_change:+.1f}",
            f"${change.revenue_change:+,.0f}"
        )
    console.print(table)


@cli.command()
@click.argument("lead_file", type=click.Path(exists=True, dir_okay=False))
@click.argument("campaign_file", type=click.Path(exists=True, dir_okay=False))
def attribute(lead_file: str, campaign_file: str):
    """Attribute a lead to the campaign that brought it in."""
    try:
        leads = parse_leads(load_json_file(lead_file))
        if len(leads) != 1:
            raise LeadEngineError("Lead file must contain exactly one lead", {"found": len(leads)})
        attribution = attribute_campaign_to_lead(leads[0], parse_campaign(load_json_file(campaign_file)))
    except LeadEngineError as e:
        _fail(e)

    _echo_json(attribution.to_dict())


# ============================================================================
# CONFIGURATION
# ============================================================================

@cli.group()
def config():
    """View and adjust engine thresholds."""
    pass


@config.command("show")
@click.pass_context
def config_show(ctx: click.Context):
    """Print the active configuration."""
    _echo_json(ctx.obj["config_manager"].as_dict())


@config.command("set")
@click.argument("key")
@click.argument("value", type=float)
@click.pass_context
def config_set(ctx: click.Context, key: str, value: float):
    """Set a numeric threshold (e.g. rebalance_threshold 25)."""
    manager = ctx.obj["config_manager"]
    try:
        manager.set_threshold(key, value)
    except KeyError:
        console.print(f"[red]Unknown setting: {key}[/red]")
        raise click.exceptions.Exit(1)
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise click.exceptions.Exit(1)

    stored = manager.as_dict()
    stored_value = {**stored["assignment"], **stored["analytics"]}[key]
    console.print(f"[green]✓ {key} = {stored_value:g}[/green] [dim]({manager.config_path})[/dim]")


@config.command("weight")
@click.argument("bucket", type=click.Choice(["hot", "warm", "cold"]))
@click.argument("weight", type=float)
@click.pass_context
def config_weight(ctx: click.Context, bucket: str, weight: float):
    """Set the synthetic score of a lead quality bucket."""
    manager = ctx.obj["config_manager"]
    manager.set_quality_weight(bucket, weight)
    console.print(f"[green]✓ {bucket} leads score {weight:g}[/green]")


if __name__ == "__main__":
    cli()
