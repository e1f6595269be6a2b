from dataclasses import dataclass
from decimal import Decimal
from .models import InsuranceRates, VND


@dataclass(frozen=True)
class ContributionBases:
    social: VND        # social + health insurance base
    unemployment: VND


@dataclass(frozen=True)
class Contributions:
    social: VND
    health: VND
    unemployment: VND
    employer_social: VND
    employer_health: VND
    employer_unemployment: VND
    employer_accident: VND

    @property
    def employee_total(self) -> VND:
        return self.social + self.health + self.unemployment

    @property
    def employer_total(self) -> VND:
        return self.employer_social + self.employer_health + self.employer_unemployment + self.employer_accident


def contribution_bases(
    insurance_salary: VND,
    minimum_wage: VND,
    base_salary: VND,
    cap_multiplier: VND = Decimal(20),
) -> ContributionBases:
    """
    Two independent caps:
      unemployment base  = min(salary, 20 x regional minimum wage)
      social/health base = min(salary, 20 x statutory base salary)
    """
    return ContributionBases(
        social=min(insurance_salary, cap_multiplier * base_salary),
        unemployment=min(insurance_salary, cap_multiplier * minimum_wage),
    )


def contributions(bases: ContributionBases, rates: InsuranceRates) -> Contributions:
    emp = rates.employee
    com = rates.employer
    return Contributions(
        social=bases.social * Decimal(str(emp.social)),
        health=bases.social * Decimal(str(emp.health)),
        unemployment=bases.unemployment * Decimal(str(emp.unemployment)),
        employer_social=bases.social * Decimal(str(com.social)),
        employer_health=bases.social * Decimal(str(com.health)),
        employer_unemployment=bases.unemployment * Decimal(str(com.unemployment)),
        employer_accident=bases.social * Decimal(str(com.accident)),
    )
