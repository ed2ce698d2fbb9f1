#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Command-line interface for PhaseWeaver.

This module provides the main CLI entry point and all subcommands for
haplotype thread extraction from phased variant calls and a variation graph.
"""

import logging
import sys
import click
from pathlib import Path
import yaml

from .version import __version__
from .config.schema import (
    CONFIG_TEMPLATES,
    ConfigValidationError,
    load_config,
    parse_rename,
    parse_sample_range,
    save_config_template,
    validate_config,
)
from .io_utils.genotype_source import VcfGenotypeSource
from .io_utils.gfa_graph import GraphFormatError, load_graph_from_gfa, write_threads_gfa
from .io_utils.thread_sinks import BinaryThreadSink, HaplotypeIndexSink, ThreadListSink
from .threading_core.batch_scheduler import InvalidBatchSizeError
from .threading_core.thread_extraction import GenotypeSourceError, ThreadExtractor
from .threading_core.variant_processor import GenotypeFormatError, ReferencePathError


def setup_logging(verbose: bool = False, quiet: bool = False, level: str = 'INFO', log_file=None):
    """Configure root logging; --verbose / --quiet override the configured level."""
    if verbose:
        level = 'DEBUG'
    elif quiet:
        level = 'ERROR'

    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, level),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
        force=True,
    )


def _parse_range_option(ctx, param, value):
    if value is None:
        return None
    try:
        return parse_sample_range(value)
    except ValueError as e:
        raise click.BadParameter(str(e))


def _parse_rename_option(ctx, param, value):
    renames = {}
    for item in value:
        try:
            vcf_contig, path_name = parse_rename(item)
        except ValueError as e:
            raise click.BadParameter(str(e))
        renames[vcf_contig] = path_name
    return renames


@click.group()
@click.version_option(version=__version__)
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose output')
@click.option('--quiet', '-q', is_flag=True, help='Suppress non-error output')
@click.pass_context
def main(ctx, verbose, quiet):
    """
    PhaseWeaver: Haplotype Thread Extraction for Variation Graphs

    Converts phased genotype calls into per-haplotype walks through a
    variation graph, ready for insertion into a haplotype index.
    """
    # Ensure context object exists
    ctx.ensure_object(dict)
    ctx.obj['VERBOSE'] = verbose
    ctx.obj['QUIET'] = quiet


# ============================================================================
# Configuration Management Commands
# ============================================================================

@main.group()
def config():
    """Configuration management commands."""
    pass


@config.command('init')
@click.option('--output', '-o', type=click.Path(), default='phaseweaver_config.yaml',
              help='Output configuration file path')
@click.option('--template', '-t',
              type=click.Choice(CONFIG_TEMPLATES),
              default='default', help='Configuration template type')
def config_init(output, template):
    """Generate a template configuration file with all available parameters."""
    click.echo(f"Generating {template} configuration template: {output}")

    try:
        save_config_template(Path(output), template=template)
        click.echo(f"✓ Configuration file created: {output}")
        click.echo("\nThe configuration file includes:")
        click.echo("  • Thread extraction settings (batch size, sample range, overlaps)")
        click.echo("  • Contig renames between variant file and graph")
        click.echo("  • Output format and logging")
        click.echo("\nEdit this file to customize thread extraction.")
    except (OSError, ValueError) as e:
        click.echo(f"✗ Error creating configuration: {e}", err=True)
        sys.exit(1)


@config.command('validate')
@click.argument('config_file', type=click.Path(exists=True))
def config_validate(config_file):
    """Validate a configuration file."""
    click.echo(f"Validating configuration file: {config_file}")

    try:
        config = load_config(Path(config_file))
        errors = validate_config(config)

        if errors:
            click.echo("\n✗ Configuration validation failed:")
            for error in errors:
                click.echo(f"  • {error}", err=True)
            sys.exit(1)
        else:
            click.echo("✓ Configuration is valid")

            # Show key settings
            click.echo("\nKey Settings:")
            click.echo(f"  Batch size: {config['threading']['batch_size']}")
            click.echo(f"  Discard overlaps: {'YES' if config['threading']['discard_overlaps'] else 'NO'}")
            click.echo(f"  Output format: {config['output']['format']}")
    except (ConfigValidationError, yaml.YAMLError) as e:
        click.echo(f"✗ Error validating configuration: {e}", err=True)
        sys.exit(1)


@config.command('show')
@click.argument('config_file', type=click.Path(exists=True))
@click.option('--format', '-f', type=click.Choice(['yaml', 'summary']), default='summary',
              help='Output format')
def config_show(config_file, format):
    """Display configuration settings."""
    try:
        config = load_config(Path(config_file))

        if format == 'yaml':
            click.echo(yaml.dump(config, default_flow_style=False, sort_keys=False))
        else:
            click.echo(f"Configuration from: {config_file}")
            click.echo("=" * 60)

            threading = config['threading']
            click.echo("\n🧵 Threading:")
            click.echo(f"  Batch size: {threading['batch_size']}")
            sample_range = threading['sample_range']
            if sample_range:
                click.echo(f"  Samples: {sample_range[0]} to {sample_range[1]}")
            else:
                click.echo("  Samples: all")
            click.echo(f"  Discard overlaps: {threading['discard_overlaps']}")
            click.echo(f"  Skip non-DNA variants: {threading['skip_non_dna']}")

            renames = config['input']['renames']
            if renames:
                click.echo("\n🔀 Contig renames:")
                for vcf_contig, path_name in renames.items():
                    click.echo(f"  {vcf_contig} → {path_name}")

            click.echo("\n📂 Output:")
            click.echo(f"  Format: {config['output']['format']}")
            click.echo(f"  Log level: {config['output']['logging']['level']}")

    except (ConfigValidationError, yaml.YAMLError) as e:
        click.echo(f"✗ Error reading configuration: {e}", err=True)
        sys.exit(1)


# ============================================================================
# Thread Extraction
# ============================================================================

@main.command()
@click.argument('graph_file', type=click.Path(exists=True))
@click.option('--vcf', '-V', 'vcf_file', required=True, type=click.Path(exists=True),
              help='Phased VCF/BCF to thread through the graph')
@click.option('--rename', '-r', 'renames', multiple=True, callback=_parse_rename_option,
              help='VCF_CONTIG=GRAPH_PATH; thread VCF contig under a graph path name (repeatable)')
@click.option('--batch-size', '-B', type=int, default=None,
              help='Samples processed per pass over the variant file [config: 200]')
@click.option('--range', '-R', 'sample_range', callback=_parse_range_option,
              help='Inclusive sample index range X..Y to process')
@click.option('--discard-overlaps', '-d', is_flag=True, default=False,
              help='Call alternate alleles at overlapping sites as reference')
@click.option('--index-out', '-G', type=click.Path(),
              help='Build a haplotype index and save it here')
@click.option('--write-haps', '-H', type=click.Path(),
              help='Write threads as a binary stream of encoded node visits')
@click.option('--threads-out', '-o', type=click.Path(),
              help='Write threads as GFA P-lines (default: stdout)')
@click.option('--thread-prefix', type=str, default=None,
              help='Prefix prepended to every thread name')
@click.option('--config', '-c', type=click.Path(exists=True),
              help='Configuration file (YAML)')
@click.pass_context
def threads(ctx, graph_file, vcf_file, renames, batch_size, sample_range, discard_overlaps,
            index_out, write_haps, threads_out, thread_prefix, config):
    """
    Extract haplotype threads from a phased VCF and a GFA graph.

    The graph must embed reference paths named after the VCF contigs (or
    renamed with --rename) and allele paths named _alt_<variant>_<allele>.
    """
    outputs = [flag for flag, value in
               (('--index-out', index_out), ('--write-haps', write_haps), ('--threads-out', threads_out))
               if value]
    if len(outputs) > 1:
        click.echo(f"✗ Error: {' and '.join(outputs)} cannot be used together", err=True)
        ctx.exit(1)

    try:
        run_config = load_config(Path(config) if config else None)
    except (ConfigValidationError, yaml.YAMLError) as e:
        click.echo(f"✗ Error reading configuration: {e}", err=True)
        ctx.exit(1)

    # Override config with command-line options
    if batch_size is not None:
        run_config['threading']['batch_size'] = batch_size
    if sample_range is not None:
        run_config['threading']['sample_range'] = [sample_range[0], sample_range[1] - 1]
    if discard_overlaps:
        run_config['threading']['discard_overlaps'] = True
    if thread_prefix is not None:
        run_config['threading']['thread_name_prefix'] = thread_prefix
    if renames:
        run_config['input']['renames'] = {**(run_config['input']['renames'] or {}), **renames}
    if index_out:
        run_config['output']['format'] = 'index'
    elif write_haps:
        run_config['output']['format'] = 'binary'
    elif threads_out:
        run_config['output']['format'] = 'gfa'

    # Validate final configuration
    config_errors = validate_config(run_config)
    if config_errors:
        click.echo("✗ Configuration validation failed:", err=True)
        for error in config_errors:
            click.echo(f"  • {error}", err=True)
        ctx.exit(1)

    output_format = run_config['output']['format']
    if output_format == 'index' and not index_out:
        click.echo("✗ Error: output format 'index' requires --index-out", err=True)
        ctx.exit(1)
    if output_format == 'binary' and not write_haps:
        click.echo("✗ Error: output format 'binary' requires --write-haps", err=True)
        ctx.exit(1)

    setup_logging(
        verbose=ctx.obj.get('VERBOSE', False),
        quiet=ctx.obj.get('QUIET', False),
        level=run_config['output']['logging']['level'],
        log_file=run_config['output']['logging']['log_file'],
    )

    threading = run_config['threading']
    range_setting = threading['sample_range']
    extraction_range = (range_setting[0], range_setting[1] + 1) if range_setting else None

    sink = None
    try:
        graph = load_graph_from_gfa(graph_file)

        if output_format == 'index':
            sink = HaplotypeIndexSink(output_path=index_out)
        elif output_format == 'binary':
            sink = BinaryThreadSink(write_haps)
        else:
            sink = ThreadListSink()

        with VcfGenotypeSource(vcf_file) as source:
            extractor = ThreadExtractor(
                graph,
                source,
                sink,
                batch_size=threading['batch_size'],
                sample_range=extraction_range,
                discard_overlaps=threading['discard_overlaps'],
                skip_non_dna=threading['skip_non_dna'],
                renames={str(k): str(v) for k, v in run_config['input']['renames'].items()},
                name_prefix=threading['thread_name_prefix'],
            )
            summary = extractor.run()

        if output_format == 'gfa':
            write_threads_gfa(sink.threads, threads_out)

    except (OSError, GraphFormatError, GenotypeSourceError, GenotypeFormatError,
            InvalidBatchSizeError, ReferencePathError) as e:
        click.echo(f"✗ Error: {e}", err=True)
        ctx.exit(1)
    finally:
        if isinstance(sink, BinaryThreadSink):
            sink.close()

    if not ctx.obj.get('QUIET', False):
        click.echo(f"✓ Extracted {summary.fragments_emitted} threads "
                   f"from {summary.variants_processed} variants "
                   f"({summary.haplotype_count} haplotypes)", err=True)
        if summary.split_events:
            click.echo(f"  • Connectivity splits: {summary.split_events}", err=True)
        if summary.skipped_sites:
            click.echo(f"  • Sites without allele paths: {summary.skipped_sites}", err=True)


if __name__ == '__main__':
    main()
