from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central config loaded from environment variables and optionally .env (local).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # -------------------------
    # Logging
    # -------------------------
    log_level: str = Field("INFO", alias="HDSTATS_LOG_LEVEL")

    # -------------------------
    # Penalty path
    # lambda_min_ratio=None picks 1e-4 when n > p, 1e-2 otherwise.
    # -------------------------
    n_lambdas: int = Field(100, alias="HDSTATS_N_LAMBDAS", ge=2)
    lambda_min_ratio: Optional[float] = Field(None, alias="HDSTATS_LAMBDA_MIN_RATIO", gt=0, lt=1)

    # -------------------------
    # Coordinate descent (scikit-learn enet_path)
    # -------------------------
    enet_tol: float = Field(1e-7, alias="HDSTATS_ENET_TOL", gt=0)
    enet_max_iter: int = Field(100_000, alias="HDSTATS_ENET_MAX_ITER", ge=1)
    # Raise instead of flagging when a path point hits max_iter
    strict_convergence: bool = Field(False, alias="HDSTATS_STRICT_CONVERGENCE")

    # -------------------------
    # Cross-validation
    # -------------------------
    cv_folds: int = Field(10, alias="HDSTATS_CV_FOLDS", ge=2)
    random_seed: int = Field(0, alias="HDSTATS_RANDOM_SEED")

    # -------------------------
    # MCMC (PyMC)
    # -------------------------
    mcmc_draws: int = Field(1000, alias="HDSTATS_MCMC_DRAWS", ge=1)
    mcmc_tune: int = Field(1000, alias="HDSTATS_MCMC_TUNE", ge=0)
    mcmc_chains: int = Field(2, alias="HDSTATS_MCMC_CHAINS", ge=1)

    # -------------------------
    # CORS
    # -------------------------
    cors_allow_origins: List[str] = Field(default_factory=lambda: ["*"], alias="CORS_ALLOW_ORIGINS")


settings = Settings()
