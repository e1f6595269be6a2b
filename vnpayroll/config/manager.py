"""Configuration manager for the Vietnam payroll policy table.

Handles loading, modifying, and saving the policy file.
"""

from __future__ import annotations
import shutil
from pathlib import Path
from ruamel.yaml import YAML
from typing import Dict, Any, List
from datetime import datetime

from ..engine.models import PolicyConfig, PolicyPeriod, Region
from ..io.loader import POLICY_FILE


class ConfigManager:
    """Manager for payroll policy configuration files."""

    def __init__(self, config_root: Path, filename: str = POLICY_FILE):
        """Initialize config manager.

        Args:
            config_root: Path to the configs directory
            filename: Policy file name inside config_root
        """
        self.config_root = config_root
        self.filename = filename

    @property
    def config_file(self) -> Path:
        return self.config_root / self.filename

    def exists(self) -> bool:
        return self.config_file.exists()

    def get_available_files(self) -> List[str]:
        """Policy files present in the config root."""
        if not self.config_root.exists():
            return []
        return sorted(p.name for p in self.config_root.glob("*.yaml"))

    def load_config(self) -> PolicyConfig:
        from ..io.loader import load_policy_config
        return load_policy_config(self.config_root, self.filename)

    def save_config(self, config: PolicyConfig) -> Dict[str, Any]:
        """Save policy configuration to file.

        Always creates an archive copy of the existing file before overwriting.
        """
        from ..io.loader import validate_policy_config
        validate_policy_config(config)

        self.config_root.mkdir(parents=True, exist_ok=True)
        archive_dir = self.config_root / "_archive"
        archive_dir.mkdir(exist_ok=True)

        archive_file = None
        if self.config_file.exists():
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
            archive_file = archive_dir / f"{self.config_file.stem}_{timestamp}.yaml"
            shutil.copy2(self.config_file, archive_file)

        try:
            config_dict = config.model_dump(mode="json", exclude_none=True)

            yaml_handler = YAML()
            yaml_handler.width = 150
            yaml_handler.indent(mapping=2, sequence=4, offset=2)
            yaml_handler.default_flow_style = None

            config_dict = self._apply_custom_formatting(config_dict)

            with open(self.config_file, "w", encoding="utf-8") as f:
                f.write("# Vietnam payroll policy table\n")
                f.write("# Contribution rates, regional minimum wages, deductions and PIT brackets by period\n")
                f.write("\n")
                yaml_handler.dump(config_dict, f)

            self._refresh_default_policy()

            return {
                "success": True,
                "message": f"Configuration saved to {self.config_file}",
                "archive_file": str(archive_file) if archive_file else None,
            }

        except Exception as e:
            if archive_file and archive_file.exists():
                shutil.copy2(archive_file, self.config_file)
            raise ValueError(f"Failed to save configuration: {str(e)}")

    def _refresh_default_policy(self):
        """Drop the cached default table when the packaged policy file was rewritten."""
        from ..io import loader
        from ..engine.policy import default_policy
        if self.config_file.resolve() == (loader.CONFIG_ROOT / POLICY_FILE).resolve():
            default_policy.cache_clear()

    def get_config_summary(self) -> Dict[str, Any]:
        """Get summary of the policy configuration."""
        config = self.load_config()

        periods = []
        for period, pol in config.periods.items():
            periods.append({
                "key": period.value,
                "label": pol.label,
                "self_deduction": pol.self_deduction,
                "dependent_deduction": pol.dependent_deduction,
                "minimum_wage_table": pol.minimum_wage_table,
                "bracket_table": pol.bracket_table,
                "bracket_count": len(config.bracket_tables[pol.bracket_table]),
            })

        return {
            "schema_version": config.schema_version,
            "country": config.country,
            "currency": config.currency,
            "base_salary": config.base_salary,
            "cap_multiplier": config.cap_multiplier,
            "minimum_wage_tables": sorted(config.minimum_wages.keys()),
            "bracket_tables": sorted(config.bracket_tables.keys()),
            "period_count": len(periods),
            "periods": periods,
        }

    def update_base_salary(self, amount: int) -> Dict[str, Any]:
        """Update the statutory base salary shared by all periods."""
        if amount <= 0:
            raise ValueError("Base salary must be > 0")
        config = self.load_config()
        previous = config.base_salary
        config.base_salary = amount
        save_result = self.save_config(config)
        return {
            "success": True,
            "previous": previous,
            "base_salary": amount,
            "message": f"Base salary updated {previous:,} -> {amount:,}",
            "archive_file": save_result.get("archive_file"),
        }

    def update_minimum_wage(self, period: PolicyPeriod, region: Region, amount: int) -> Dict[str, Any]:
        """Update one regional minimum wage in the table used by ``period``.

        Tables are shared between periods, so the change applies to every
        period referencing the same table.
        """
        if amount <= 0:
            raise ValueError("Minimum wage must be > 0")
        config = self.load_config()
        table_key = config.periods[PolicyPeriod(period)].minimum_wage_table
        region = Region(region)
        previous = config.minimum_wages[table_key][region]
        config.minimum_wages[table_key][region] = amount
        save_result = self.save_config(config)

        affected = [p.value for p, pol in config.periods.items() if pol.minimum_wage_table == table_key]
        return {
            "success": True,
            "table": table_key,
            "region": region.value,
            "previous": previous,
            "minimum_wage": amount,
            "affected_periods": affected,
            "message": f"Minimum wage {table_key}/{region.value} updated {previous:,} -> {amount:,}",
            "archive_file": save_result.get("archive_file"),
        }

    def _apply_custom_formatting(self, config_dict: Dict[str, Any]) -> Dict[str, Any]:
        """Write bracket rows inline and add section comments."""
        from ruamel.yaml.comments import CommentedMap, CommentedSeq

        formatted_config = CommentedMap(config_dict)

        if "insurance" in formatted_config:
            formatted_config.yaml_set_comment_before_after_key(
                "insurance", before="\n# Employee and employer contribution rates"
            )
        if "minimum_wages" in formatted_config:
            formatted_config.yaml_set_comment_before_after_key(
                "minimum_wages", before="\n# Regional minimum wages, cap unemployment insurance"
            )
        if "periods" in formatted_config:
            formatted_config.yaml_set_comment_before_after_key(
                "periods", before="\n# Policy periods"
            )

        if "bracket_tables" in formatted_config:
            tables = CommentedMap(formatted_config["bracket_tables"])
            for table_key, brackets in tables.items():
                seq = CommentedSeq(brackets)
                for i, bracket in enumerate(seq):
                    bracket_map = CommentedMap(bracket)
                    bracket_map.fa.set_flow_style()
                    seq[i] = bracket_map
                tables[table_key] = seq
            formatted_config["bracket_tables"] = tables

        return formatted_config
