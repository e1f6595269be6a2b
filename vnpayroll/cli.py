from __future__ import annotations
from dataclasses import asdict
from decimal import Decimal
from pathlib import Path
from typing import List, Optional, Dict, Any
import json
import csv
import logging
import typer
from rich import print as rprint
from pydantic import BaseModel
import platform
from datetime import datetime, timezone

from .io.loader import load_policy_config, CONFIG_ROOT
from .engine.models import (
    CalculationInput, CalculationMode, CalculationResult, PolicyConfig, PolicyPeriod, Region, vnd,
)
from .engine.gross_net import calculate, compute_from_gross
from .engine.solver import bisect_gross
from .engine.policy import tax_brackets_for, minimum_wage_for, deductions_for, period_label
from .engine.pit import bracket_info
from .engine.rounding import format_vnd
from .viz.curve import plot_curve
from .config.manager import ConfigManager

app = typer.Typer(help="Vietnam payroll CLI (GROSS <-> NET, PIT by policy period), config driven")

logger = logging.getLogger(__name__)

SCHEMA_VERSION = "1.0"
VNPAYROLL_VERSION = "0.1.0"  # Should match pyproject.toml

# Error codes for JSON responses
ERROR_CODES = {
    "INVALID_INPUT": 2,
    "CALCULATION_ERROR": 3,
    "FILE_NOT_FOUND": 4,
    "VALIDATION_ERROR": 5,
    "INTERNAL_ERROR": 8,
}


class DisplaySettings(BaseModel):
    """Presentation options, passed explicitly to every renderer."""
    show_employer_cost: bool = False
    separator: str = "."


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Vietnam payroll tax engine."""
    if verbose:
        from rich.logging import RichHandler
        logging.basicConfig(level=logging.DEBUG, format="%(message)s", handlers=[RichHandler()])


def _create_console_with_imports():
    """Create Rich console with all required imports."""
    from rich.console import Console
    from rich.panel import Panel
    from rich.text import Text
    from rich.table import Table

    return Console(), Panel, Text, Table


def _create_json_response(data: Any, success: bool = True) -> Dict[str, Any]:
    """Create standardized JSON response envelope."""
    return {
        "success": success,
        "schema_version": SCHEMA_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "data": data
    }


def _create_json_error(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Create standardized JSON error response.

    Args:
        code: Error code from ERROR_CODES
        message: Human-readable error message
        details: Optional additional error details
    """
    error_data = {
        "code": code,
        "message": message
    }
    if details:
        error_data["details"] = details

    return {
        "success": False,
        "schema_version": SCHEMA_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "error": error_data
    }


def _handle_json_error(error: Exception, json_mode: bool = False) -> None:
    """Print an error in the requested format and exit with its code."""
    if isinstance(error, ValueError):
        code = "INVALID_INPUT"
    elif isinstance(error, FileNotFoundError):
        code = "FILE_NOT_FOUND"
    else:
        code = "INTERNAL_ERROR"
        logger.debug("Unexpected error", exc_info=error)

    if json_mode:
        message = str(error) if code != "INTERNAL_ERROR" else f"Unexpected error: {str(error)}"
        print(json.dumps(_create_json_error(code, message), indent=2))
    else:
        rprint({"error": str(error)})
    raise typer.Exit(code=ERROR_CODES[code])


def _build_input(
    mode: CalculationMode,
    period: PolicyPeriod,
    amount: int,
    region: Region,
    dependents: int,
    insurance_salary: Optional[int],
    other_deductions: int,
) -> CalculationInput:
    """No explicit insurance salary means insurance follows the actual gross."""
    tracks = insurance_salary is None
    return CalculationInput(
        mode=mode,
        period=period,
        amount=vnd(amount),
        region=region,
        dependents=dependents,
        insurance_salary=vnd(amount if tracks else insurance_salary),
        insurance_tracks_actual_salary=tracks,
        other_deductions=vnd(other_deductions),
    )


def _result_to_dict(result: CalculationResult) -> Dict[str, Any]:
    data = asdict(result)
    out: Dict[str, Any] = {}
    for key, value in data.items():
        if key == "tax_details":
            out[key] = [
                {k: (float(v) if isinstance(v, Decimal) else v) for k, v in d.items()}
                for d in value
            ]
        else:
            out[key] = float(value)
    out["employee_insurance_total"] = float(result.employee_insurance_total)
    out["total_deductions"] = float(result.total_deductions)
    return out


def _calc_once(
    inp: CalculationInput,
    policy: Optional[PolicyConfig] = None,
) -> Dict[str, Any]:
    """Run one calculation and flatten it for display/JSON."""
    if inp.mode == CalculationMode.NET_TO_GROSS:
        report = bisect_gross(inp.amount, inp, policy)
        if not report.converged:
            logger.warning("Gross search did not converge (diff %s)", report.last_diff)
        result = report.result
        solver = {"converged": report.converged, "iterations": report.iterations, "last_diff": float(report.last_diff)}
    else:
        result = calculate(inp, policy)
        solver = None

    brackets = tax_brackets_for(inp.period, policy)
    out = _result_to_dict(result)
    out.update({
        "mode": inp.mode.value,
        "period": inp.period.value,
        "period_label": period_label(inp.period, policy),
        "region": inp.region.value,
        "dependents": inp.dependents,
        "insurance_tracks_actual_salary": inp.insurance_tracks_actual_salary,
        "marginal_rate_percent": bracket_info(result.taxable_income, brackets)["rate_percent"] if result.taxable_income > 0 else 0.0,
        "avg_pit_rate": float(result.pit_total / result.gross) if result.gross > 0 else 0.0,
    })
    if solver is not None:
        out["solver"] = solver
    return out


def _print_calculation_result(result: dict, settings: DisplaySettings):
    """Print breakdown, PIT table and (optionally) employer cost."""
    console, Panel, Text, Table = _create_console_with_imports()

    def fmt(v) -> str:
        return format_vnd(vnd(v), settings.separator)

    head = Text()
    head.append("💰 PAYROLL RESULT\n\n", style="bold green")
    head.append(f"Period: {result['period_label']}\n", style="cyan")
    head.append(f"Region: {result['region']}   Dependents: {result['dependents']}\n", style="cyan")
    head.append(f"Gross: {fmt(result['gross'])} VND\n", style="bold")
    head.append(f"Net: {fmt(result['net'])} VND\n", style="bold green")
    head.append(f"PIT: {fmt(result['pit_total'])} VND", style="bold red")

    solver = result.get("solver")
    if solver and not solver["converged"]:
        head.append(
            f"\n\n⚠️ Gross search stopped after {solver['iterations']} iterations "
            f"(net off by {fmt(solver['last_diff'])} VND)",
            style="yellow",
        )
    console.print(Panel(head, title=result["mode"].replace("_", " "), border_style="green"))

    table = Table(title="📊 Breakdown", show_header=True, header_style="bold blue")
    table.add_column("Item", style="cyan")
    table.add_column("Amount (VND)", justify="right", style="green")
    table.add_row("Gross salary", fmt(result["gross"]))
    table.add_row("Social insurance (8%)", fmt(result["social_insurance"]))
    table.add_row("Health insurance (1.5%)", fmt(result["health_insurance"]))
    table.add_row("Unemployment insurance (1%)", fmt(result["unemployment_insurance"]))
    table.add_row("Pre-tax income", fmt(result["pre_tax_income"]))
    table.add_row("Self deduction", fmt(result["self_deduction"]))
    table.add_row("Dependent deduction", fmt(result["dependent_deduction"]))
    table.add_row("Other deductions", fmt(result["other_deductions"]))
    table.add_row("Taxable income", fmt(result["taxable_income"]))
    table.add_row("Personal income tax", fmt(result["pit_total"]))
    table.add_row("[bold]Net salary", f"[bold]{fmt(result['net'])}")
    console.print("\n", table)

    if result["tax_details"]:
        pit = Table(title="🧾 PIT by bracket", show_header=True, header_style="bold magenta")
        pit.add_column("Level", justify="center")
        pit.add_column("Range")
        pit.add_column("Taxable (VND)", justify="right")
        pit.add_column("Rate", justify="right")
        pit.add_column("Tax (VND)", justify="right", style="red")
        for d in result["tax_details"]:
            pit.add_row(
                str(d["level"]), d["range_label"], fmt(d["taxable_segment"]),
                f"{d['rate_percent']:g}%", fmt(d["tax_amount"]),
            )
        console.print("\n", pit)

    if settings.show_employer_cost:
        emp = Table(title="🏢 Employer cost", show_header=True, header_style="bold yellow")
        emp.add_column("Item", style="cyan")
        emp.add_column("Amount (VND)", justify="right")
        emp.add_row("Gross salary", fmt(result["gross"]))
        emp.add_row("Social insurance (17%)", fmt(result["employer_social_insurance"]))
        emp.add_row("Health insurance (3%)", fmt(result["employer_health_insurance"]))
        emp.add_row("Unemployment insurance (1%)", fmt(result["employer_unemployment_insurance"]))
        emp.add_row("Accident & disease fund (0.5%)", fmt(result["employer_accident_fund"]))
        emp.add_row("[bold]Total employer cost", f"[bold]{fmt(result['total_employer_cost'])}")
        console.print("\n", emp)


@app.command()
def version(
    json_out: bool = typer.Option(False, "--json", help="Output JSON format"),
):
    """Show version information."""
    version_data = {
        "version": VNPAYROLL_VERSION,
        "schema_version": SCHEMA_VERSION,
        "platform": platform.system().lower()
    }
    if json_out:
        print(json.dumps(_create_json_response(version_data), indent=2))
    else:
        rprint(version_data)


@app.command()
def calc(
    amount: int = typer.Option(..., min=0, help="Gross (gross-to-net) or target net (net-to-gross), VND"),
    mode: CalculationMode = typer.Option(CalculationMode.GROSS_TO_NET, case_sensitive=False, help="Calculation direction"),
    period: PolicyPeriod = typer.Option(PolicyPeriod.P1_2025_H2, case_sensitive=False, help="Policy period"),
    region: Region = typer.Option(Region.I, case_sensitive=False, help="Minimum wage region"),
    dependents: int = typer.Option(0, min=0, help="Number of registered dependents"),
    insurance_salary: Optional[int] = typer.Option(None, min=0, help="Fixed insurance salary; omit to insure the actual gross"),
    other_deductions: int = typer.Option(0, min=0, help="Other deductions (VND)"),
    employer_cost: bool = typer.Option(False, "--employer-cost", help="Also show the employer cost table"),
    separator: str = typer.Option(".", help="Thousands separator for display"),
    json_out: bool = typer.Option(False, "--json", help="Output JSON"),
    config_root: Path = typer.Option(CONFIG_ROOT, help="Directory holding the policy file"),
):
    """Convert GROSS -> NET or NET -> GROSS and show the breakdown.

      --amount 20000000                                    (gross to net, insurance on actual gross)
      --amount 17460000 --mode NET_TO_GROSS                (find the gross for a net target)
      --amount 30000000 --insurance-salary 10000000        (insurance on a fixed salary)
    """
    try:
        policy = load_policy_config(config_root)
        inp = _build_input(mode, period, amount, region, dependents, insurance_salary, other_deductions)
        result = _calc_once(inp, policy)
    except Exception as e:
        _handle_json_error(e, json_out)
        return

    if json_out:
        print(json.dumps(_create_json_response(result), indent=2, ensure_ascii=False))
    else:
        _print_calculation_result(result, DisplaySettings(show_employer_cost=employer_cost, separator=separator))


@app.command()
def brackets(
    period: PolicyPeriod = typer.Option(PolicyPeriod.P1_2025_H2, case_sensitive=False, help="Policy period"),
    json_out: bool = typer.Option(False, "--json", help="Output JSON format"),
    config_root: Path = typer.Option(CONFIG_ROOT, help="Directory holding the policy file"),
):
    """Show the PIT bracket table for a policy period."""
    try:
        policy = load_policy_config(config_root)
        table = tax_brackets_for(period, policy)
    except Exception as e:
        _handle_json_error(e, json_out)
        return

    from .engine.pit import range_label
    rows = [
        {"order": b.order, "lower": b.lower, "upper": b.upper, "rate_percent": b.rate_percent, "label": range_label(b)}
        for b in table
    ]
    result_data = {"period": period.value, "label": period_label(period, policy), "brackets": rows}

    if json_out:
        print(json.dumps(_create_json_response(result_data), indent=2, ensure_ascii=False))
        return

    console, _, _, Table = _create_console_with_imports()
    t = Table(title=f"PIT brackets - {result_data['label']}", show_header=True, header_style="bold blue")
    t.add_column("Level", justify="center")
    t.add_column("Range")
    t.add_column("Rate", justify="right", style="yellow")
    for r in rows:
        t.add_row(str(r["order"]), r["label"], f"{r['rate_percent']:g}%")
    console.print(t)


@app.command()
def periods(
    region: Region = typer.Option(Region.I, case_sensitive=False, help="Region for the minimum wage column"),
    json_out: bool = typer.Option(False, "--json", help="Output JSON format"),
    config_root: Path = typer.Option(CONFIG_ROOT, help="Directory holding the policy file"),
):
    """List policy periods with deductions and the regional minimum wage."""
    try:
        policy = load_policy_config(config_root)
    except Exception as e:
        _handle_json_error(e, json_out)
        return

    rows = []
    for p in PolicyPeriod:
        ded = deductions_for(p, policy)
        rows.append({
            "period": p.value,
            "label": period_label(p, policy),
            "self_deduction": int(ded.self_deduction),
            "dependent_deduction": int(ded.dependent_deduction),
            "minimum_wage": int(minimum_wage_for(p, region, policy)),
            "bracket_count": len(tax_brackets_for(p, policy)),
        })

    if json_out:
        print(json.dumps(_create_json_response({"region": region.value, "periods": rows}), indent=2, ensure_ascii=False))
        return

    console, _, _, Table = _create_console_with_imports()
    t = Table(title=f"📅 Policy periods (region {region.value})", show_header=True, header_style="bold blue")
    t.add_column("Period", style="cyan")
    t.add_column("Label")
    t.add_column("Self", justify="right")
    t.add_column("Dependent", justify="right")
    t.add_column("Min. wage", justify="right")
    t.add_column("Brackets", justify="right")
    for r in rows:
        t.add_row(
            r["period"], r["label"], format_vnd(vnd(r["self_deduction"])),
            format_vnd(vnd(r["dependent_deduction"])), format_vnd(vnd(r["minimum_wage"])), str(r["bracket_count"]),
        )
    console.print(t)


def _scan_rows(
    period: PolicyPeriod, region: Region, dependents: int, other_deductions: int,
    insurance_salary: Optional[int], min_gross: int, max_gross: int, step: int,
    policy: PolicyConfig,
) -> List[Dict[str, Any]]:
    rows: List[Dict[str, Any]] = []
    for g in range(min_gross, max_gross + 1, step):
        inp = _build_input(CalculationMode.GROSS_TO_NET, period, g, region, dependents, insurance_salary, other_deductions)
        r = compute_from_gross(inp.amount, inp, policy)
        rows.append({
            "gross": g,
            "employee_insurance": float(r.employee_insurance_total),
            "taxable_income": float(r.taxable_income),
            "pit_total": float(r.pit_total),
            "net": float(r.net),
            "total_employer_cost": float(r.total_employer_cost),
            "bracket_level": r.tax_details[-1].level if r.tax_details else 0,
        })
    return rows


@app.command()
def scan(
    min_gross: int = typer.Option(..., "--min", min=0, help="Lowest gross (VND)"),
    max_gross: int = typer.Option(..., "--max", min=0, help="Highest gross (VND)"),
    step: int = typer.Option(1_000_000, min=1, help="Gross increment (VND)"),
    period: PolicyPeriod = typer.Option(PolicyPeriod.P1_2025_H2, case_sensitive=False),
    region: Region = typer.Option(Region.I, case_sensitive=False),
    dependents: int = typer.Option(0, min=0),
    insurance_salary: Optional[int] = typer.Option(None, min=0, help="Fixed insurance salary; omit to insure the actual gross"),
    other_deductions: int = typer.Option(0, min=0),
    out: str = typer.Option("scan.csv", help="Output CSV path"),
    json_out: bool = typer.Option(False, "--json", help="Print JSON instead of writing CSV"),
    config_root: Path = typer.Option(CONFIG_ROOT, help="Directory holding the policy file"),
):
    """Tabulate net, PIT and employer cost for gross = min..max (step)."""
    try:
        if max_gross < min_gross:
            raise ValueError("--max must be >= --min")
        policy = load_policy_config(config_root)
        rows = _scan_rows(period, region, dependents, other_deductions, insurance_salary, min_gross, max_gross, step, policy)
    except Exception as e:
        _handle_json_error(e, json_out)
        return

    if json_out:
        print(json.dumps(_create_json_response(rows), indent=2))
        return

    out_path = Path(out)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    fieldnames = list(rows[0].keys())
    with out_path.open("w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=fieldnames)
        w.writeheader()
        w.writerows(rows)
    rprint({"saved": str(out_path), "rows": len(rows)})


@app.command()
def plot(
    min_gross: int = typer.Option(..., "--min", min=0, help="Lowest gross (VND)"),
    max_gross: int = typer.Option(..., "--max", min=0, help="Highest gross (VND)"),
    step: int = typer.Option(500_000, min=1),
    period: PolicyPeriod = typer.Option(PolicyPeriod.P1_2025_H2, case_sensitive=False),
    region: Region = typer.Option(Region.I, case_sensitive=False),
    dependents: int = typer.Option(0, min=0),
    insurance_salary: Optional[int] = typer.Option(None, min=0),
    other_deductions: int = typer.Option(0, min=0),
    mark_gross: Optional[int] = typer.Option(None, min=0, help="Highlight this gross on the curve"),
    out: str = typer.Option("curve.png"),
    config_root: Path = typer.Option(CONFIG_ROOT, help="Directory holding the policy file"),
):
    """Plot net salary and PIT against gross; dotted lines mark bracket changes."""
    try:
        if max_gross < min_gross:
            raise ValueError("--max must be >= --min")
        policy = load_policy_config(config_root)
        rows = _scan_rows(period, region, dependents, other_deductions, insurance_salary, min_gross, max_gross, step, policy)
        pts = [(r["gross"], Decimal(str(r["net"])), Decimal(str(r["pit_total"]))) for r in rows]

        edges = [cur["gross"] for prev, cur in zip(rows, rows[1:]) if cur["bracket_level"] != prev["bracket_level"]]
        annotations: Dict[str, Any] = {"bracket_edges": edges, "title": period_label(period, policy)}

        if mark_gross is not None:
            inp = _build_input(CalculationMode.GROSS_TO_NET, period, mark_gross, region, dependents, insurance_salary, other_deductions)
            r = calculate(inp, policy)
            annotations.update({
                "marker_gross": mark_gross,
                "marker_net": float(r.net),
                "label": f"Net {format_vnd(r.net)}",
            })

        plot_curve(pts, out, annotations=annotations)
    except Exception as e:
        _handle_json_error(e)
        return

    rprint({"saved": out, "points": len(pts), "bracket_edges": len(edges)})


@app.command()
def validate(
    json_out: bool = typer.Option(False, "--json", help="Output JSON format"),
    config_root: Path = typer.Option(CONFIG_ROOT, help="Directory holding the policy file"),
):
    """Validate the policy configuration file."""
    try:
        load_policy_config(config_root)
        result_data = {"status": "valid", "config_root": str(config_root), "message": "Policy configuration valid"}

        if json_out:
            print(json.dumps(_create_json_response(result_data), indent=2))
        else:
            rprint(result_data)
    except Exception as e:
        if json_out:
            error_response = _create_json_error("VALIDATION_ERROR", str(e), {"config_root": str(config_root)})
            print(json.dumps(error_response, indent=2))
        else:
            rprint({"status": "invalid", "config_root": str(config_root), "error": str(e)})
        raise typer.Exit(code=ERROR_CODES["VALIDATION_ERROR"])


@app.command()
def config_summary(
    json_out: bool = typer.Option(False, "--json", help="Output JSON format"),
    config_root: Path = typer.Option(CONFIG_ROOT, help="Directory holding the policy file"),
):
    """Summarize the policy configuration."""
    try:
        summary = ConfigManager(config_root).get_config_summary()
    except Exception as e:
        _handle_json_error(e, json_out)
        return

    if json_out:
        print(json.dumps(_create_json_response(summary), indent=2, ensure_ascii=False))
        return

    console, Panel, Text, Table = _create_console_with_imports()
    summary_text = Text()
    summary_text.append("📋 POLICY CONFIGURATION SUMMARY\n\n", style="bold green")
    summary_text.append(f"Country: {summary['country']}\n", style="cyan")
    summary_text.append(f"Currency: {summary['currency']}\n", style="cyan")
    summary_text.append(f"Schema Version: {summary['schema_version']}\n", style="dim")
    summary_text.append(f"Base salary: {format_vnd(vnd(summary['base_salary']))} (cap x{summary['cap_multiplier']})")
    console.print(Panel(summary_text, title="Configuration Overview", border_style="green"))

    t = Table(show_header=True, header_style="bold blue")
    t.add_column("Period", style="cyan")
    t.add_column("Wage table", justify="center")
    t.add_column("Bracket table")
    t.add_column("Brackets", justify="right", style="yellow")
    for p in summary["periods"]:
        t.add_row(p["key"], p["minimum_wage_table"], p["bracket_table"], str(p["bracket_count"]))
    console.print("\n", t)


@app.command()
def set_base_salary(
    amount: int = typer.Option(..., min=1, help="New statutory base salary (VND)"),
    json_out: bool = typer.Option(False, "--json", help="Output JSON format"),
    config_root: Path = typer.Option(CONFIG_ROOT, help="Directory holding the policy file"),
):
    """Update the statutory base salary (previous file is archived)."""
    try:
        result = ConfigManager(config_root).update_base_salary(amount)
    except Exception as e:
        _handle_json_error(e, json_out)
        return
    if json_out:
        print(json.dumps(_create_json_response(result), indent=2))
    else:
        rprint(result)


@app.command()
def set_minimum_wage(
    period: PolicyPeriod = typer.Option(..., case_sensitive=False, help="Period whose wage table is updated"),
    region: Region = typer.Option(..., case_sensitive=False),
    amount: int = typer.Option(..., min=1, help="New regional minimum wage (VND)"),
    json_out: bool = typer.Option(False, "--json", help="Output JSON format"),
    config_root: Path = typer.Option(CONFIG_ROOT, help="Directory holding the policy file"),
):
    """Update one regional minimum wage (shared by periods using the same table)."""
    try:
        result = ConfigManager(config_root).update_minimum_wage(period, region, amount)
    except Exception as e:
        _handle_json_error(e, json_out)
        return
    if json_out:
        print(json.dumps(_create_json_response(result), indent=2))
    else:
        rprint(result)
