from pydantic import Field
from pydantic_settings import BaseSettings
from typing import Dict, List, Tuple

class Settings(BaseSettings):
    APP_NAME: str = Field("PayrollLedger", description="Logger namespace")
    DB_URL: str = Field("sqlite:///./data/payroll.db", description="Database URL")
    LOG_LEVEL: str = Field("INFO", description="Logging level name")
    AUDIT_LOG_PATH: str = Field("./data/logs", description="Directory for log and audit files")

    # Statutory defaults (Vietnam, VND, monthly)
    STANDARD_WORKING_DAYS: int = 26

    # 20x statutory base salary (2,340,000 x 20)
    INSURANCE_CAP: int = 46_800_000
    INSURANCE_RATES: Dict[str, Dict[str, float]] = {
        "social": {"employee": 0.08, "employer": 0.175},
        "health": {"employee": 0.015, "employer": 0.03},
        "unemployment": {"employee": 0.01, "employer": 0.01},
    }

    PERSONAL_DEDUCTION: int = 11_000_000
    DEPENDENT_DEDUCTION: int = 4_400_000

    # PIT: cumulative upper bound of each bracket, marginal rate
    PIT_BRACKETS: List[Tuple[float, float]] = [
        (5_000_000, 0.05),
        (10_000_000, 0.10),
        (18_000_000, 0.15),
        (32_000_000, 0.20),
        (52_000_000, 0.25),
        (80_000_000, 0.30),
        (float("inf"), 0.35),
    ]

settings = Settings()
