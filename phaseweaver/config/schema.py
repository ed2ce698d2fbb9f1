"""
PhaseWeaver v0.1.0

Configuration schema for PhaseWeaver.

Defines all available configuration parameters with defaults and validation.

Author: PhaseWeaver Development Team
License: Dual License (Academic/Commercial) - See LICENSE_ACADEMIC.md and LICENSE_COMMERCIAL.md
"""

from typing import Dict, Any, Optional, List, Tuple
from pathlib import Path
import copy
import yaml


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""
    pass


# Default configuration values
DEFAULT_CONFIG = {
    # ========================================================================
    # Thread Extraction
    # ========================================================================
    'threading': {
        'batch_size': 200,  # Samples per batch; bounds memory use
        'sample_range': None,  # [first, last] inclusive; None = all samples
        'discard_overlaps': False,  # Call alts at overlapping sites as reference
        'skip_non_dna': True,  # Ignore symbolic / N / * alleles
        'thread_name_prefix': '',
    },

    # ========================================================================
    # Input
    # ========================================================================
    'input': {
        'renames': {},  # Variant-file contig -> graph path name
    },

    # ========================================================================
    # Output
    # ========================================================================
    'output': {
        'format': 'gfa',  # 'index', 'binary', 'gfa'

        # Logging
        'logging': {
            'level': 'INFO',  # 'DEBUG', 'INFO', 'WARNING', 'ERROR'
            'log_file': None,
        },
    },
}

VALID_OUTPUT_FORMATS = ['index', 'binary', 'gfa']
VALID_LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
CONFIG_TEMPLATES = ['default', 'large_cohort', 'strict']


def load_config(config_path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load configuration from file or return defaults.

    Args:
        config_path: Path to YAML config file (None = use defaults)

    Returns:
        Configuration dictionary
    """
    config = copy.deepcopy(DEFAULT_CONFIG)

    if config_path:
        config_path = Path(config_path)
        if config_path.exists():
            with open(config_path) as f:
                user_config = yaml.safe_load(f) or {}

            if not isinstance(user_config, dict):
                raise ConfigValidationError(f"Configuration file {config_path} must contain a mapping")

            # Deep merge user config into defaults
            config = _deep_merge(config, user_config)

            section_errors = _section_errors(config)
            if section_errors:
                raise ConfigValidationError(f"{config_path}: " + "; ".join(section_errors))

    return config


def _section_errors(config: Dict[str, Any]) -> List[str]:
    """Report configuration sections that are not mappings."""
    errors = []
    for section in ('threading', 'input', 'output'):
        if not isinstance(config.get(section, {}), dict):
            errors.append(f"Invalid {section} section: must be a mapping")
    output = config.get('output', {})
    if isinstance(output, dict) and not isinstance(output.get('logging', {}), dict):
        errors.append("Invalid output.logging section: must be a mapping")
    return errors


def _deep_merge(base: Dict, override: Dict) -> Dict:
    """
    Deep merge two dictionaries.

    Args:
        base: Base dictionary
        override: Override dictionary

    Returns:
        Merged dictionary
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def save_config_template(output_path: Path, template: str = 'default'):
    """
    Save a configuration template to file.

    Args:
        output_path: Output file path
        template: Template type ('default', 'large_cohort', 'strict')
    """
    if template not in CONFIG_TEMPLATES:
        raise ValueError(f"Unknown configuration template: {template}")

    config = copy.deepcopy(DEFAULT_CONFIG)

    # Customize for specific templates
    if template == 'large_cohort':
        config['threading']['batch_size'] = 50
        config['output']['format'] = 'index'

    elif template == 'strict':
        config['threading']['discard_overlaps'] = True

    with open(output_path, 'w') as f:
        yaml.dump(config, f, default_flow_style=False, sort_keys=False)


def validate_config(config: Dict[str, Any]) -> List[str]:
    """
    Validate configuration dictionary.

    Args:
        config: Configuration to validate

    Returns:
        List of validation errors (empty if valid)
    """
    errors = _section_errors(config)
    if errors:
        return errors

    threading = config.get('threading', {})

    # Batch size must be a positive integer
    batch_size = threading.get('batch_size')
    if isinstance(batch_size, bool) or not isinstance(batch_size, int) or batch_size <= 0:
        errors.append(f"Invalid batch_size: {batch_size} (must be a positive integer)")

    # Sample range
    sample_range = threading.get('sample_range')
    if sample_range is not None:
        if (not isinstance(sample_range, (list, tuple)) or len(sample_range) != 2
                or not all(isinstance(x, int) and not isinstance(x, bool) for x in sample_range)):
            errors.append(f"Invalid sample_range: must be [first, last]")
        elif sample_range[0] < 0 or sample_range[0] > sample_range[1]:
            errors.append(f"Invalid sample_range: must be [first, last] with 0 <= first <= last")

    for flag in ('discard_overlaps', 'skip_non_dna'):
        if not isinstance(threading.get(flag), bool):
            errors.append(f"Invalid {flag}: must be true or false")

    if not isinstance(threading.get('thread_name_prefix', ''), str):
        errors.append("Invalid thread_name_prefix: must be a string")

    # Renames map variant-file contigs to graph paths
    renames = config.get('input', {}).get('renames', {})
    if not isinstance(renames, dict):
        errors.append("Invalid renames: must be a mapping of VCF contig to graph path")
    else:
        seen_paths = {}
        for vcf_contig, path_name in renames.items():
            if not vcf_contig or not path_name:
                errors.append(f"Invalid rename: {vcf_contig!r} -> {path_name!r}")
            elif path_name in seen_paths:
                errors.append(
                    f"Graph path {path_name} renamed from both {seen_paths[path_name]} and {vcf_contig}"
                )
            else:
                seen_paths[path_name] = vcf_contig

    # Output
    output = config.get('output', {})
    if output.get('format') not in VALID_OUTPUT_FORMATS:
        errors.append(f"Invalid output format: {output.get('format')}")

    level = output.get('logging', {}).get('level')
    if level not in VALID_LOG_LEVELS:
        errors.append(f"Invalid logging level: {level}")

    return errors


def parse_sample_range(text: str) -> Tuple[int, int]:
    """
    Parse an inclusive 'X..Y' sample range into a half-open (X, Y + 1).

    Raises:
        ValueError: If the range is malformed or empty.
    """
    first, sep, last = text.partition('..')
    if not sep:
        raise ValueError(f"sample range must look like X..Y, got '{text}'")
    try:
        start, end = int(first), int(last)
    except ValueError as e:
        raise ValueError(f"sample range must look like X..Y, got '{text}'") from e
    if start < 0 or end < start:
        raise ValueError(f"sample range {text} is empty or negative")
    return start, end + 1


def parse_rename(text: str) -> Tuple[str, str]:
    """
    Parse a 'VCF_CONTIG=GRAPH_PATH' rename.

    Raises:
        ValueError: If either side is missing.
    """
    vcf_contig, sep, path_name = text.partition('=')
    if not sep or not vcf_contig or not path_name:
        raise ValueError(f"rename must look like VCF_CONTIG=GRAPH_PATH, got '{text}'")
    return vcf_contig, path_name
