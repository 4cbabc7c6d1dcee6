# commands.py
# Flask CLI commands: `flask --app nestprep convert ...` and `flask --app nestprep validate ...`

import logging

import click

from nestprep.utils.converter import ConversionSettings, convert_files, parse_file_spec
from nestprep.utils.dxf_reader import read_dxf
from nestprep.utils.errors import ConversionError
from nestprep.utils.validation import validate_entities, validation_summary


@click.command('convert')
@click.option('-i', '--input', 'inputs', multiple=True, required=True,
              help='DXF file, optionally PATH:QUANTITY. Repeat for several files.')
@click.option('-o', '--output', type=click.Path(dir_okay=False, writable=True), default=None,
              help='Write the problem JSON here instead of stdout.')
@click.option('--height', type=float, default=None, help='Strip height.')
@click.option('--spacing', type=float, default=None)
@click.option('--arc-segments', type=int, default=None)
@click.option('--spline-segments', type=int, default=None)
@click.option('--tolerance', type=float, default=None, help='Contour endpoint matching distance.')
@click.option('--allow-rotations/--no-rotations', default=None)
@click.option('--name', default=None, help='Problem name.')
def convert_command(inputs, output, height, spacing, arc_segments, spline_segments, tolerance,
                    allow_rotations, name):
    """Convert DXF files into a strip-nesting problem JSON."""
    try:
        settings = ConversionSettings.from_mapping({
            'strip_height': height,
            'spacing': spacing,
            'arc_segments': arc_segments,
            'spline_segments': spline_segments,
            'tolerance': tolerance,
            'allow_rotations': allow_rotations,
            'name': name,
        })
    except ValueError as e:
        raise click.BadParameter(str(e))

    files = [parse_file_spec(spec) for spec in inputs]
    for path, quantity in files:
        click.echo(f"  {path} x{quantity}", err=True)

    result = convert_files(files, settings)
    for warning in result.warnings:
        click.echo(f"WARNING [{warning['file']}]: {warning['message']}", err=True)
    for error in result.errors:
        click.echo(f"ERROR [{error['file']}] ({error['stage']}): {error['message']}", err=True)

    if not result.success:
        raise click.ClickException(result.message or 'Conversion failed')

    text = result.json_text()
    if output:
        with open(output, 'w', encoding='utf-8') as f:
            f.write(text)
        click.echo(f"Wrote {result.stats['total_items']} item(s) to {output}", err=True)
    else:
        click.echo(text)
    logging.info(f"CLI conversion finished: {result.stats}")


@click.command('validate')
@click.argument('dxf_file', type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def validate_command(ctx, dxf_file):
    """Report geometric defects in a DXF file. Exits non-zero when any ERROR is found."""
    try:
        entities, warnings = read_dxf(dxf_file)
    except ConversionError as e:
        raise click.ClickException(str(e))

    for warning in warnings:
        click.echo(f"WARNING: {warning}", err=True)
    issues = validate_entities(entities)
    for issue in issues:
        click.echo(f"{issue.severity:<7} {issue.type:<17} {','.join(issue.entity_ids)}  {issue.message}")
    summary = validation_summary(issues)
    click.echo(f"{len(entities)} entities, {summary['total']} issue(s): {summary['errors']} error(s), "
               f"{summary['warnings']} warning(s), {summary['auto_fixable']} auto-fixable")
    if summary['errors']:
        ctx.exit(1)
