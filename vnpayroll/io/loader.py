import logging
from pathlib import Path
import yaml
from ..engine.models import PolicyConfig, PolicyPeriod, Region, Bracket

logger = logging.getLogger(__name__)

CONFIG_ROOT = Path(__file__).resolve().parents[1] / "configs"
POLICY_FILE = "vietnam.yaml"


def load_yaml(path: Path):
    """Load YAML file safely."""
    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f)


def load_policy_config(root: Path = CONFIG_ROOT, filename: str = POLICY_FILE) -> PolicyConfig:
    """Load and validate the payroll policy table."""
    config_file = root / filename
    if not config_file.exists():
        raise FileNotFoundError(f"Policy config not found: {config_file}")

    data = load_yaml(config_file)
    config = PolicyConfig(**data)
    validate_policy_config(config)
    logger.debug("Loaded policy config %s (schema %s)", config_file, config.schema_version)
    return config


def validate_policy_config(config: PolicyConfig):
    """Validate cross references and bracket tables of a policy config."""
    if config.base_salary <= 0:
        raise ValueError("base_salary must be > 0")
    if config.cap_multiplier <= 0:
        raise ValueError("cap_multiplier must be > 0")

    _validate_rates(config)

    for table_key, wages in config.minimum_wages.items():
        missing = [r.value for r in Region if r not in wages]
        if missing:
            raise ValueError(f"Minimum wage table '{table_key}' is missing regions: {missing}")
        for region, amount in wages.items():
            if amount <= 0:
                raise ValueError(f"Minimum wage table '{table_key}' region {region.value}: amount must be > 0")

    for table_key, brackets in config.bracket_tables.items():
        _validate_brackets(brackets, table_key)

    missing_periods = [p.value for p in PolicyPeriod if p not in config.periods]
    if missing_periods:
        raise ValueError(f"Policy periods missing from config: {missing_periods}")

    for period, pol in config.periods.items():
        if pol.minimum_wage_table not in config.minimum_wages:
            available = list(config.minimum_wages.keys())
            raise ValueError(
                f"Period {period.value} references unknown minimum wage table "
                f"'{pol.minimum_wage_table}'. Available: {available}"
            )
        if pol.bracket_table not in config.bracket_tables:
            available = list(config.bracket_tables.keys())
            raise ValueError(
                f"Period {period.value} references unknown bracket table "
                f"'{pol.bracket_table}'. Available: {available}"
            )
        if pol.self_deduction < 0 or pol.dependent_deduction < 0:
            raise ValueError(f"Period {period.value}: deductions must be non-negative")


def _validate_rates(config: PolicyConfig):
    for side in ("employee", "employer"):
        rates = getattr(config.insurance, side)
        for name, rate in rates.model_dump().items():
            if rate < 0 or rate >= 1:
                raise ValueError(f"Insurance {side} rate '{name}' must be in [0, 1), got {rate}")


def _validate_brackets(brackets: list[Bracket], table_key: str):
    """Brackets must be contiguous from 0 and end in exactly one unbounded bracket."""
    if not brackets:
        raise ValueError(f"Bracket table '{table_key}' is empty")
    if brackets[0].lower != 0:
        raise ValueError(f"Bracket table '{table_key}': first bracket must start at 0")

    for idx, b in enumerate(brackets):
        if b.order != idx + 1:
            raise ValueError(f"Bracket table '{table_key}' bracket {idx}: order must be {idx + 1}, got {b.order}")
        if b.rate_percent < 0:
            raise ValueError(f"Bracket table '{table_key}' bracket {idx}: rate_percent must be >= 0")
        last = idx == len(brackets) - 1
        if b.upper is None and not last:
            raise ValueError(f"Bracket table '{table_key}' bracket {idx}: only the last bracket may be unbounded")
        if b.upper is not None and last:
            raise ValueError(f"Bracket table '{table_key}': last bracket must be unbounded")
        if b.upper is not None and b.upper <= b.lower:
            raise ValueError(f"Bracket table '{table_key}' bracket {idx}: upper must be > lower")

    for i in range(1, len(brackets)):
        prev_end = brackets[i - 1].upper
        if prev_end != brackets[i].lower:
            raise ValueError(f"Gap in bracket table '{table_key}': {prev_end} -> {brackets[i].lower}")
