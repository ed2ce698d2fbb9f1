#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Tests for configuration loading, templates and validation.
"""

import pytest
import yaml

from phaseweaver.config import (
    DEFAULT_CONFIG,
    ConfigValidationError,
    load_config,
    parse_rename,
    parse_sample_range,
    save_config_template,
    validate_config,
)


class TestLoadConfig:

    def test_defaults(self):
        config = load_config()
        assert config['threading']['batch_size'] == 200
        assert config['threading']['sample_range'] is None
        assert config['threading']['discard_overlaps'] is False
        assert config['threading']['skip_non_dna'] is True
        assert config['threading']['thread_name_prefix'] == ''
        assert config['input']['renames'] == {}
        assert config['output']['format'] == 'gfa'

    def test_deep_merge(self, temp_output_dir):
        path = temp_output_dir / "config.yaml"
        path.write_text("threading:\n  batch_size: 25\ninput:\n  renames:\n    '1': chr1\n")
        config = load_config(path)
        assert config['threading']['batch_size'] == 25
        # Untouched keys keep their defaults
        assert config['threading']['skip_non_dna'] is True
        assert config['input']['renames'] == {'1': 'chr1'}

    def test_defaults_not_mutated(self, temp_output_dir):
        path = temp_output_dir / "config.yaml"
        path.write_text("threading:\n  batch_size: 25\n")
        config = load_config(path)
        config['input']['renames']['x'] = 'y'
        assert DEFAULT_CONFIG['threading']['batch_size'] == 200
        assert DEFAULT_CONFIG['input']['renames'] == {}

    def test_empty_file(self, temp_output_dir):
        path = temp_output_dir / "config.yaml"
        path.write_text("")
        assert load_config(path) == load_config()

    def test_non_mapping(self, temp_output_dir):
        path = temp_output_dir / "config.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ConfigValidationError):
            load_config(path)

    @pytest.mark.parametrize("text", [
        "threading: 5\n",
        "input: [a, b]\n",
        "output: gfa\n",
        "output:\n  logging: DEBUG\n",
    ])
    def test_section_must_be_mapping(self, temp_output_dir, text):
        path = temp_output_dir / "config.yaml"
        path.write_text(text)
        with pytest.raises(ConfigValidationError):
            load_config(path)


class TestTemplates:

    @pytest.mark.parametrize("template", ['default', 'large_cohort', 'strict'])
    def test_templates_are_valid(self, temp_output_dir, template):
        path = temp_output_dir / f"{template}.yaml"
        save_config_template(path, template=template)
        assert validate_config(load_config(path)) == []

    def test_large_cohort(self, temp_output_dir):
        path = temp_output_dir / "config.yaml"
        save_config_template(path, template='large_cohort')
        with open(path) as f:
            config = yaml.safe_load(f)
        assert config['threading']['batch_size'] == 50

    def test_strict(self, temp_output_dir):
        path = temp_output_dir / "config.yaml"
        save_config_template(path, template='strict')
        assert load_config(path)['threading']['discard_overlaps'] is True

    def test_unknown_template(self, temp_output_dir):
        with pytest.raises(ValueError):
            save_config_template(temp_output_dir / "config.yaml", template='bogus')


class TestValidateConfig:

    def test_defaults_valid(self):
        assert validate_config(load_config()) == []

    @pytest.mark.parametrize("batch_size", [0, -5, 'ten', None, True])
    def test_invalid_batch_size(self, batch_size):
        config = load_config()
        config['threading']['batch_size'] = batch_size
        errors = validate_config(config)
        assert any('batch_size' in error for error in errors)

    @pytest.mark.parametrize("sample_range", [[3, 1], [-1, 2], [1], 'all'])
    def test_invalid_sample_range(self, sample_range):
        config = load_config()
        config['threading']['sample_range'] = sample_range
        assert any('sample_range' in error for error in validate_config(config))

    def test_valid_sample_range(self):
        config = load_config()
        config['threading']['sample_range'] = [0, 0]
        assert validate_config(config) == []

    def test_duplicate_rename_target(self):
        config = load_config()
        config['input']['renames'] = {'1': 'chr1', 'one': 'chr1'}
        assert any('chr1' in error for error in validate_config(config))

    def test_invalid_output_format(self):
        config = load_config()
        config['output']['format'] = 'vg'
        assert validate_config(config) == ["Invalid output format: vg"]

    def test_invalid_log_level(self):
        config = load_config()
        config['output']['logging']['level'] = 'LOUD'
        assert validate_config(config) == ["Invalid logging level: LOUD"]

    def test_section_not_mapping(self):
        config = load_config()
        config['threading'] = 5
        assert validate_config(config) == ["Invalid threading section: must be a mapping"]


class TestParsers:

    def test_sample_range_is_inclusive(self):
        assert parse_sample_range("0..9") == (0, 10)
        assert parse_sample_range("4..4") == (4, 5)

    @pytest.mark.parametrize("text", ["5", "a..b", "5..2", "-1..3", "1...3"])
    def test_bad_sample_range(self, text):
        with pytest.raises(ValueError):
            parse_sample_range(text)

    def test_rename(self):
        assert parse_rename("1=chr1") == ('1', 'chr1')

    @pytest.mark.parametrize("text", ["chr1", "=chr1", "1="])
    def test_bad_rename(self, text):
        with pytest.raises(ValueError):
            parse_rename(text)
