"""CLI interface for the ambassador governance engine."""

import logging
import sys
from pathlib import Path
from typing import Annotated, Optional

import typer
from pydantic import TypeAdapter, ValidationError
from rich.console import Console
from rich.table import Table

from ambassador.compliance import (
    ComplianceFilter,
    ComplianceResult,
    PublishPolicy,
    available_rule_sets,
    get_rule_set,
)
from ambassador.config import AmbassadorConfig, load_config, merge_cli_overrides
from ambassador.errors import (
    ComplianceViolation,
    DailyGateBlocked,
    GovernanceError,
    PermissionDenied,
)
from ambassador.governance import (
    EXHAUSTED,
    Capability,
    PermissionMatrix,
    PlanTier,
    TopicCluster,
    TrustStep,
)
from ambassador.tenants import Role, Session, TenantService

app = typer.Typer(
    name="ambassador",
    help="Governance engine: permissions, trust progression, compliance and topic plans.",
)
slot_app = typer.Typer(help="Manage a tenant's content slots.")
app.add_typer(slot_app, name="slot")

console = Console()

TenantOption = Annotated[str, typer.Option("--tenant", "-t", help="Tenant id.")]


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        from ambassador import __version__

        console.print(f"ambassador {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
    config_path: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="Path to an .ambassador.toml file."),
    ] = None,
    store_dir: Annotated[
        Optional[str],
        typer.Option("--store-dir", help="Directory holding tenant records."),
    ] = None,
    verbose: Annotated[bool, typer.Option("--verbose", help="Enable debug logging.")] = False,
) -> None:
    """Ambassador - content governance engine."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    config = load_config(config_path)
    ctx.obj = merge_cli_overrides(config, store_dir=store_dir)


def _config(ctx: typer.Context) -> AmbassadorConfig:
    config = ctx.obj
    return config if isinstance(config, AmbassadorConfig) else load_config()


def _read_text(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    path = Path(source)
    if not path.exists():
        console.print(f"[red]Error:[/red] File not found: {source}")
        raise typer.Exit(1)
    return path.read_text(encoding="utf-8")


def _print_violations(result: ComplianceResult) -> None:
    table = Table(title=f"Violations ({result.rule_set})")
    table.add_column("Severity")
    table.add_column("Matched")
    table.add_column("Reason")
    for v in result.violations:
        color = {"HIGH": "red", "MEDIUM": "yellow"}.get(v.severity.value, "white")
        table.add_row(f"[{color}]{v.severity.value}[/{color}]", v.matched_text, v.reason)
    console.print(table)
    if result.suggestions:
        console.print("[bold]Suggestions:[/bold]")
        for s in result.suggestions:
            console.print(f"  - {s}")


@app.command()
def check(
    ctx: typer.Context,
    source: Annotated[str, typer.Argument(help="Text file to check, or '-' for stdin.")],
    rule_set: Annotated[
        Optional[str],
        typer.Option("--rule-set", "-r", help="Compliance pack to apply."),
    ] = None,
    fix: Annotated[
        bool,
        typer.Option("--fix", help="Print the auto-corrected text."),
    ] = False,
) -> None:
    """Evaluate text against a compliance rule set."""
    name = rule_set or _config(ctx).compliance.rule_set
    try:
        pack = get_rule_set(name)
    except KeyError:
        console.print(f"[red]Error:[/red] Unknown rule set: {name}")
        console.print(f"Available: {', '.join(available_rule_sets())}")
        raise typer.Exit(1)

    text = _read_text(source)
    compliance = ComplianceFilter(pack)
    result = compliance.evaluate(text)

    if result.passed:
        console.print("[green]Passed[/green] - no violations found.")
        return

    _print_violations(result)
    if fix:
        console.print()
        console.print(compliance.apply_auto_correction(text, result.violations), markup=False)
    raise typer.Exit(1)


@app.command()
def permissions(
    tier: Annotated[PlanTier, typer.Option("--tier", help="Plan tier.")] = PlanTier.BASIC,
    step: Annotated[int, typer.Option("--step", min=1, max=3, help="Trust step.")] = 1,
) -> None:
    """Show which capabilities a (tier, step) pair unlocks."""
    matrix = PermissionMatrix()
    table = Table(title=f"Capabilities for {tier.value} / STEP {step}")
    table.add_column("Capability")
    table.add_column("Requires")
    table.add_column("Verdict")
    for feature, req in matrix.matrix():
        verdict = matrix.resolve(feature, tier, TrustStep(step))
        if verdict.granted:
            status = "[green]granted[/green]"
        else:
            status = f"[red]denied ({verdict.reason.value})[/red]"
        table.add_row(feature.value, f"{req.min_plan.value} / STEP {int(req.min_step)}", status)
    console.print(table)


@slot_app.command("create")
def slot_create(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Display name for the slot.")],
    tenant: TenantOption = "default",
    persona: Annotated[str, typer.Option("--persona", help="Persona / job title.")] = "",
    tier: Annotated[
        Optional[PlanTier], typer.Option("--tier", help="Update the tenant's plan tier first.")
    ] = None,
) -> None:
    """Create a slot with an empty plan."""
    service = TenantService.open(tenant, _config(ctx))
    try:
        if tier is not None:
            service.set_plan_tier(tier)
        slot = service.create_slot(name, persona=persona)
    except GovernanceError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1)
    console.print(f"[green]Created[/green] {slot.slot_id} ({name})")


@slot_app.command("status")
def slot_status(ctx: typer.Context, tenant: TenantOption = "default") -> None:
    """List slots with trust and plan progress."""
    service = TenantService.open(tenant, _config(ctx))
    slots = service.slots()
    if not slots:
        console.print("[yellow]No slots.[/yellow]")
        return

    table = Table(title=f"Tenant {tenant} ({service.record.plan_tier.value})")
    for column in ("Slot", "Name", "Step", "Published", "Progress", "Status", "Last action"):
        table.add_column(column)
    for slot in slots:
        progress = service.progress(slot.slot_id)
        table.add_row(
            slot.slot_id,
            slot.name,
            str(int(slot.trust_step)),
            str(slot.counters.published_count),
            f"{progress.completed}/{progress.total} ({progress.state})",
            slot.action_status.value,
            slot.last_action_date.isoformat() if slot.last_action_date else "-",
        )
    console.print(table)


@slot_app.command("plan")
def slot_plan(
    ctx: typer.Context,
    slot_id: Annotated[str, typer.Argument(help="Slot id.")],
    plan_file: Annotated[Path, typer.Argument(help="JSON list of topic clusters.")],
    tenant: TenantOption = "default",
) -> None:
    """Load a topic-cluster plan into a slot."""
    if not plan_file.exists():
        console.print(f"[red]Error:[/red] File not found: {plan_file}")
        raise typer.Exit(1)
    try:
        clusters = TypeAdapter(list[TopicCluster]).validate_json(plan_file.read_bytes())
    except ValidationError as exc:
        console.print(f"[red]Error:[/red] Invalid plan: {exc}")
        raise typer.Exit(1)

    service = TenantService.open(tenant, _config(ctx))
    try:
        service.load_plan(slot_id, clusters)
    except GovernanceError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1)
    progress = service.progress(slot_id)
    console.print(f"[green]Loaded[/green] {len(clusters)} cluster(s), {progress.total} topic(s)")


@slot_app.command("publish")
def slot_publish(
    ctx: typer.Context,
    slot_id: Annotated[str, typer.Argument(help="Slot id.")],
    source: Annotated[str, typer.Argument(help="Article file, or '-' for stdin.")],
    tenant: TenantOption = "default",
    policy: Annotated[
        Optional[PublishPolicy],
        typer.Option("--policy", help="auto_correct or reject_on_violation."),
    ] = None,
    feature: Annotated[
        Optional[Capability],
        typer.Option("--feature", help="Edit surface capability to check."),
    ] = None,
    admin: Annotated[bool, typer.Option("--admin", help="Act with the daily-gate bypass.")] = False,
) -> None:
    """Publish today's article for a slot."""
    service = TenantService.open(tenant, _config(ctx))
    session = Session(
        tenant_id=tenant,
        plan_tier=service.record.plan_tier,
        role=Role.ADMIN if admin else Role.MEMBER,
    )
    text = _read_text(source)
    try:
        outcome = service.publish(slot_id, session, text, policy=policy, feature=feature)
    except DailyGateBlocked as exc:
        console.print(f"[yellow]Already published today[/yellow] ({exc.last_action_date}).")
        raise typer.Exit(1)
    except ComplianceViolation as exc:
        _print_violations(
            ComplianceResult(
                passed=False,
                violations=exc.violations,
                suggestions=exc.suggestions,
                rule_set=service.orchestrator.compliance.rule_set_name,
            )
        )
        raise typer.Exit(1)
    except PermissionDenied as exc:
        console.print(f"[red]Denied:[/red] {exc.feature} requires a higher {exc.reason.value.lower()}.")
        raise typer.Exit(1)
    except GovernanceError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1)

    console.print(f"[green]Published[/green] day {outcome.topic.day}: {outcome.topic.title}")
    if outcome.notice:
        console.print(f"[yellow]{outcome.notice}[/yellow]")
    if outcome.step_advanced:
        console.print(f"[bold green]Trust step advanced to STEP {int(outcome.trust_step)}[/bold green]")
    nxt = service.tracker.get_next_topic(slot_id)
    console.print("Plan exhausted." if nxt is EXHAUSTED else f"Next: day {nxt.day} - {nxt.title}")


@slot_app.command("reset")
def slot_reset(
    ctx: typer.Context,
    slot_id: Annotated[str, typer.Argument(help="Slot id.")],
    tenant: TenantOption = "default",
    yes: Annotated[bool, typer.Option("--yes", help="Confirm the irreversible reset.")] = False,
) -> None:
    """Unpublish every topic and rewind the cursor."""
    if not yes:
        console.print("[red]Refusing to reset without --yes.[/red]")
        raise typer.Exit(1)
    service = TenantService.open(tenant, _config(ctx))
    try:
        service.reset(slot_id, confirm=True)
    except GovernanceError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1)
    console.print(f"[green]Reset[/green] {slot_id}")


@slot_app.command("delete")
def slot_delete(
    ctx: typer.Context,
    slot_id: Annotated[str, typer.Argument(help="Slot id.")],
    tenant: TenantOption = "default",
    yes: Annotated[bool, typer.Option("--yes", help="Confirm deletion and content purge.")] = False,
) -> None:
    """Delete a slot and purge its published content."""
    if not yes:
        console.print("[red]Refusing to delete without --yes.[/red]")
        raise typer.Exit(1)
    service = TenantService.open(tenant, _config(ctx))
    try:
        purged = service.delete_slot(slot_id, confirm=True)
    except GovernanceError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1)
    console.print(f"[green]Deleted[/green] {slot_id}; purged {purged} content record(s)")
