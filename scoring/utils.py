"""
Scoring utility functions.
Provides coefficient loading (defaults -> YAML file -> environment) and the linear importance score.
"""
from typing import Dict, Any, Optional, Mapping
import os
import yaml
from exceptions import ConfigurationError
from normalize.models import IssueMetrics, ScoreCoefficients, Score

# filename used for coefficient YAML configuration
COEFFICIENTS_FILENAME = 'coefficients.yaml'

DEFAULT_COEFFICIENTS = ScoreCoefficients().to_dict()

# environment variable -> coefficient name
COEFFICIENT_ENV_VARS = {
    'COEFF_VERSION': 'version',
    'COEFF_UNIQUE_USERS': 'unique_users',
    'COEFF_POS_REACTIONS': 'pos_reactions',
    'COEFF_NEG_REACTIONS': 'neg_reactions',
    'COEFF_NEUTRAL_REACTIONS': 'neutral_reactions',
    'COEFF_POS_COMMENT_REACTIONS': 'pos_comment_reactions',
    'COEFF_NON_MEMBER_COMMENTS': 'non_member_comments',
    'COEFF_MEMBER_COMMENTS': 'member_comments',
    'COEFF_MENTIONS': 'mentions',
}


def default_coefficients_path() -> str:
    return os.path.join(os.path.dirname(os.path.dirname(__file__)), 'config', COEFFICIENTS_FILENAME)


def _parse_number(name: str, raw: Any):
    """Parse a coefficient value, keeping integers as int so scores render without a trailing '.0'."""
    if isinstance(raw, bool):
        raise ConfigurationError(f"Coefficient '{name}' must be a number, got {raw!r}")
    if isinstance(raw, (int, float)):
        return raw
    text = str(raw).strip()
    try:
        return int(text)
    except ValueError:
        pass
    try:
        return float(text)
    except ValueError:
        raise ConfigurationError(f"Coefficient '{name}' must be a number, got {raw!r}")


def _parse_version(raw: Any) -> int:
    value = _parse_number('version', raw)
    if isinstance(value, float):
        if not value.is_integer():
            raise ConfigurationError(f"Coefficient version must be an integer, got {raw!r}")
        value = int(value)
    if value < 0:
        raise ConfigurationError(f"Coefficient version must be non-negative, got {raw!r}")
    return value


def _read_yaml_coefficients(path: str) -> Dict[str, Any]:
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as ex:
        raise ConfigurationError(f"Failed to load coefficients from {path}: {ex}")
    if not isinstance(data, dict):
        raise ConfigurationError(f"Coefficients file {path} must contain a mapping")
    unknown = sorted(set(data) - set(DEFAULT_COEFFICIENTS))
    if unknown:
        raise ConfigurationError(f"Unknown coefficient(s) in {path}: {', '.join(unknown)}")
    return data


def load_coefficients(path: Optional[str] = None, env: Optional[Mapping[str, str]] = None) -> ScoreCoefficients:
    """
    Build the coefficient set: defaults, overridden by the YAML file (if it exists),
    overridden by COEFF_* environment variables. Empty environment values are ignored.
    """
    env = os.environ if env is None else env
    values: Dict[str, Any] = dict(DEFAULT_COEFFICIENTS)

    path = path or default_coefficients_path()
    if os.path.exists(path):
        values.update(_read_yaml_coefficients(path))

    for var, name in COEFFICIENT_ENV_VARS.items():
        raw = env.get(var)
        if raw is not None and str(raw).strip() != '':
            values[name] = raw

    parsed = {name: _parse_number(name, values[name]) for name in ScoreCoefficients.FIELDS}
    return ScoreCoefficients(version=_parse_version(values['version']), **parsed)


def compute_score(metrics: IssueMetrics, coefficients: ScoreCoefficients) -> Score:
    """
    The importance score is a linear combination of the issue metrics.
    No clamping or rounding: net-negative sentiment yields a negative score.
    """
    c = coefficients
    value = (
        metrics.unique_users * c.unique_users
        + metrics.reactions.positive * c.pos_reactions
        + metrics.reactions.negative * c.neg_reactions
        + metrics.reactions.neutral * c.neutral_reactions
        + metrics.reactions_on_comments.positive * c.pos_comment_reactions
        + metrics.nb_non_member_comments * c.non_member_comments
        + (metrics.nb_comments - metrics.nb_non_member_comments) * c.member_comments
        + metrics.nb_mentions * c.mentions
    )
    return Score(value=value, version=c.version)


def format_number(value) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def format_score_field(score: Score) -> str:
    """Render the score for the ADO score field. Version 0 keeps the legacy format."""
    if score.version == 0:
        return f"GitHub score = {format_number(score.value)}"
    return f"{format_number(score.value)} (GitHub Score v{score.version})"
