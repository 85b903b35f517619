"""
Configuration file support for pomakit pipelines.

Supports YAML and JSON config files. A config mirrors the keyword arguments
of the pipeline stages:

    input: intensities.csv
    metadata: samples.csv
    output: results/study
    imputation:
      method: knn
      zeros_as_na: false
      remove_na: false
      cutoff: 20
    normalization:
      method: log_pareto
    rank_prod:
      logged: true
      cutoff: 0.05
      method: pfp
"""

import json
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from pomakit.errors import InvalidArgumentError
from pomakit.quality.imputation import ImputationMethod
from pomakit.stats.differential import SignificanceMethod
from pomakit.stats.normalization import NormalizationMethod

__all__ = [
    'ImputationConfig',
    'NormalizationConfig',
    'RankProdConfig',
    'PipelineConfig',
    'load_config',
    'validate_config',
    'config_from_dict',
]


@dataclass
class ImputationConfig:
    """Imputation configuration."""
    method: str = "knn"
    zeros_as_na: bool = False
    remove_na: bool = False
    cutoff: float = 20.0
    n_neighbors: int = 10
    random_state: Optional[int] = 123


@dataclass
class NormalizationConfig:
    """Normalization configuration."""
    method: str = "log_pareto"
    log_base: float = 10.0
    pseudocount: float = 1.0


@dataclass
class RankProdConfig:
    """Rank product configuration."""
    logged: bool = True
    logbase: float = 2.0
    paired: Optional[int] = None
    cutoff: float = 0.05
    method: str = "pfp"
    num_perm: int = 100
    calculate_product: bool = True


@dataclass
class PipelineConfig:
    """
    Complete configuration of an impute -> normalize -> rank product run.

    rank_prod is None when no differential analysis is wanted.
    """
    input: Optional[Path] = None
    metadata: Optional[Path] = None
    output: Optional[Path] = None
    imputation: ImputationConfig = field(default_factory=ImputationConfig)
    normalization: NormalizationConfig = field(default_factory=NormalizationConfig)
    rank_prod: Optional[RankProdConfig] = None

    def to_dict(self) -> Dict[str, Any]:
        config = asdict(self)
        for key in ('input', 'metadata', 'output'):
            if config[key] is not None:
                config[key] = str(config[key])
        return config


def load_config(config_path: Path) -> Dict[str, Any]:
    """
    Load configuration from YAML or JSON file.

    Parameters:
        config_path: Path to config file (.yaml, .yml, or .json)

    Returns:
        Dictionary with configuration values

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If file format is unsupported or invalid

    Examples:
        >>> config = load_config(Path("pipeline.yaml"))
        >>> print(config['normalization']['method'])
        log_pareto
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    suffix = config_path.suffix.lower()
    if suffix not in ('.yaml', '.yml', '.json'):
        raise ValueError(
            f"Unsupported config format: {suffix}. "
            f"Use .yaml, .yml, or .json"
        )

    try:
        with open(config_path, 'r') as f:
            if suffix == '.json':
                config = json.load(f)
            else:
                config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in config file: {e}") from e
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in config file: {e}") from e

    if config is None:
        return {}

    if not isinstance(config, dict):
        raise ValueError("Config file must contain a dictionary/mapping at top level")

    return config


def _check_number(section: str, key: str, value: Any, low: float, high: float,
                  low_inclusive: bool = True, integer: bool = False) -> None:
    kind = int if integer else (int, float)
    ok = isinstance(value, kind) and not isinstance(value, bool)
    if ok:
        ok = (value >= low if low_inclusive else value > low) and value <= high
    if not ok:
        bracket = "[" if low_inclusive else "("
        noun = "an integer" if integer else "a number"
        raise InvalidArgumentError(
            f"{section}.{key} must be {noun} in {bracket}{low}, {high}], got: {value!r}"
        )


def _check_method(section: str, method: Any, choices) -> None:
    valid = [m.value for m in choices]
    if method not in valid:
        raise InvalidArgumentError(
            f"Invalid {section} method '{method}'. "
            f"Choose from: {', '.join(valid)}"
        )


def validate_config(config: Dict[str, Any]) -> None:
    """
    Validate configuration structure and values.

    Checks method choices against the closed sets each stage accepts and
    keeps numeric options in range. Unknown sections or keys are rejected.

    Parameters:
        config: Configuration dictionary

    Raises:
        InvalidArgumentError: If configuration is invalid
    """
    sections = {
        'imputation': ImputationConfig,
        'normalization': NormalizationConfig,
        'rank_prod': RankProdConfig,
    }
    allowed = {'input', 'metadata', 'output', *sections}
    unknown = set(config) - allowed
    if unknown:
        raise InvalidArgumentError(
            f"Unknown config keys: {', '.join(sorted(unknown))}"
        )

    for name, schema in sections.items():
        section = config.get(name)
        if section is None:
            continue
        if not isinstance(section, dict):
            raise InvalidArgumentError(f"Config section '{name}' must be a mapping")
        unknown = set(section) - set(schema.__dataclass_fields__)
        if unknown:
            raise InvalidArgumentError(
                f"Unknown keys in '{name}': {', '.join(sorted(unknown))}"
            )

    imputation = config.get('imputation') or {}
    if 'method' in imputation:
        _check_method('imputation', imputation['method'], ImputationMethod)
    if 'cutoff' in imputation:
        _check_number('imputation', 'cutoff', imputation['cutoff'], 0, 100)
    if 'n_neighbors' in imputation:
        _check_number('imputation', 'n_neighbors', imputation['n_neighbors'], 1, float('inf'),
                      integer=True)

    normalization = config.get('normalization') or {}
    if 'method' in normalization:
        _check_method('normalization', normalization['method'], NormalizationMethod)
    if 'log_base' in normalization:
        _check_number('normalization', 'log_base', normalization['log_base'],
                      0, float('inf'), low_inclusive=False)
        if normalization['log_base'] == 1:
            raise InvalidArgumentError("normalization.log_base must be different from 1")
    if 'pseudocount' in normalization:
        _check_number('normalization', 'pseudocount', normalization['pseudocount'],
                      0, float('inf'))

    rank_prod = config.get('rank_prod') or {}
    if 'method' in rank_prod:
        _check_method('rank_prod', rank_prod['method'], SignificanceMethod)
    if 'cutoff' in rank_prod:
        _check_number('rank_prod', 'cutoff', rank_prod['cutoff'], 0, 1, low_inclusive=False)
    if 'num_perm' in rank_prod:
        _check_number('rank_prod', 'num_perm', rank_prod['num_perm'], 1, float('inf'),
                      integer=True)
    if rank_prod.get('paired') is not None:
        _check_number('rank_prod', 'paired', rank_prod['paired'], 1, float('inf'),
                      integer=True)


def config_from_dict(config: Dict[str, Any]) -> PipelineConfig:
    """
    Build a PipelineConfig from a (validated) dictionary.

    Missing sections get their defaults, except rank_prod which stays None
    unless present.
    """
    validate_config(config)

    def path(key: str) -> Optional[Path]:
        value = config.get(key)
        return Path(value) if value is not None else None

    rank_prod = config.get('rank_prod')
    return PipelineConfig(
        input=path('input'),
        metadata=path('metadata'),
        output=path('output'),
        imputation=ImputationConfig(**(config.get('imputation') or {})),
        normalization=NormalizationConfig(**(config.get('normalization') or {})),
        rank_prod=RankProdConfig(**rank_prod) if rank_prod is not None else None,
    )
