#!/usr/bin/env python3
"""
Command-line interface for cxxbind.
"""

import logging

import click

from cxxbind.core.errors import ConfigError, GenerationError, LoadError, PassError
from cxxbind.generators import TEMPLATES
from cxxbind.pipeline.config import Options, load_options
from cxxbind.pipeline.generator import CodeGenerator
from cxxbind.plugins import load_transform

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

EXIT_CONFIG_ERROR = 2
EXIT_LOAD_ERROR = 3
EXIT_PIPELINE_ERROR = 4


@click.command(
    context_settings={'help_option_names': ['-h', '--help']},
    no_args_is_help=True,
)
@click.argument('headers', nargs=-1)
@click.option('--define', '-D', 'defines', multiple=True, help='Preprocessor define (repeatable)')
@click.option('--include', '-I', 'include_dirs', multiple=True, help='Include directory (repeatable)')
@click.option('--ns', '--namespace', 'namespace', help='Namespace of the generated bindings')
@click.option('--outdir', '-o', 'output_dir', help='Output directory')
@click.option('--debug', is_flag=True, help='Emit provenance comments in generated code')
@click.option('--lib', '--library', 'library_name', help='Name of the native library to bind')
@click.option('--template', '-t', help=f"Output template ({', '.join(sorted(TEMPLATES))})")
@click.option('--assembly', '-a', help='Transform to load: registered name, Python file or module[:name]')
@click.option('--config', '-c', type=click.Path(dir_okay=False), help='JSON or YAML configuration file')
@click.option('--verbose', '-v', is_flag=True, help='Verbose output')
@click.pass_context
def cli(ctx, headers, defines, include_dirs, namespace, output_dir, debug,
        library_name, template, assembly, config, verbose):
    """Generate bindings for the C/C++ HEADERS"""
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        options = load_options(config) if config else Options()
        options = options.merge({
            'headers': list(headers),
            'defines': list(defines),
            'include_dirs': list(include_dirs),
            'namespace': namespace,
            'output_dir': output_dir,
            'library_name': library_name,
            'template': template,
            'assembly': assembly,
            'debug': debug,
            'verbose': verbose,
        }).validate()
        if options.template not in TEMPLATES:
            raise ConfigError(
                f"Unknown template '{options.template}' (available: {', '.join(sorted(TEMPLATES))})"
            )
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(EXIT_CONFIG_ERROR)

    try:
        transform = load_transform(options.assembly)
    except LoadError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(EXIT_LOAD_ERROR)

    generator = CodeGenerator(options, transform)
    try:
        result = generator.run()
    except (PassError, GenerationError) as e:
        logger.debug("Pipeline failed", exc_info=True)
        click.echo(f"Error: {e}", err=True)
        ctx.exit(EXIT_PIPELINE_ERROR)

    # Print summary
    click.echo(f"Parsed {len(result.parsed)} header(s), {len(result.failed)} failed")
    for failure in result.failed:
        click.echo(f"  - {failure}", err=True)
    for path in result.outputs:
        click.echo(f"Wrote {path}")
    if not result.parsed:
        click.echo("Nothing to generate")


def main():
    """Main entry point"""
    cli(obj={})


if __name__ == '__main__':
    main()
