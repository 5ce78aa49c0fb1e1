#!/usr/bin/env python3
import click
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional
from datetime import datetime

from .api_client import ProductAPI
from .catalog import normalize_sku, search_local_product
from .config import config
from .dimensions import format_dimension_for_display, page_size_points
from .exceptions import MalformedInput, PopTagError
from .export import PopExporter
from .image_processor import ImageProcessor
from .models import LayoutDensity, PopSettings, Product, Template
from .output_formats import OutputFormat, detect_format_from_filename
from .session import EditingSession

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def get_default_output_filename(extension: str = "pdf") -> str:
    """Generate default output filename with timestamp."""
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    return f"pop-{timestamp}.{extension}"


def read_sku_file(file: Path) -> List[str]:
    """One SKU per line; blank lines and # comments are skipped."""
    skus = []
    with open(file, 'r') as f:
        for line in f:
            line = line.strip()
            if line and not line.startswith('#'):
                skus.append(normalize_sku(line))
    return skus


def read_product_records(file: Path) -> List[Product]:
    """Products from a JSON file holding one record or a list of records."""
    with open(file, 'r') as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = [data]
    if not isinstance(data, list):
        raise MalformedInput(f"{file} must hold a product record or a list of records")
    return [Product.from_record(record) for record in data if isinstance(record, dict)]


def connect_backend() -> Optional[ProductAPI]:
    """Authenticated client, reusing a saved token when there is one."""
    from .keychain import get_saved_token, save_token
    from .credentials import get_credentials

    api = ProductAPI(token=get_saved_token())
    if api.is_authenticated:
        return api

    click.echo("Checking credentials...")
    credentials = get_credentials()
    click.echo(f"Authenticating with {api.base_url}...")
    if not api.login(credentials['API_USERNAME'], credentials['API_PASSWORD']):
        return None
    save_token(api.auth_token)
    return api


def resolve_template(value: Optional[str], api: Optional[ProductAPI]) -> Template:
    """A template image path/URL, or the id of a template stored on the backend."""
    if not value:
        return Template()
    if value.startswith(('http://', 'https://', 'data:')) or Path(value).exists():
        return Template(id="cli", name=Path(value).name or "custom", image_url=value, type="custom")
    if api is not None:
        template = api.get_template(value)
        if template is not None:
            return template
    logger.warning(f"Template {value} not found, using the default background")
    return Template()


@click.command()
@click.argument('skus', nargs=-1, required=False)
@click.option(
    '--file', '-f',
    type=click.Path(exists=True, path_type=Path),
    help='Read SKUs from a file (one SKU per line)'
)
@click.option(
    '--products-json', '-j',
    type=click.Path(exists=True, path_type=Path),
    help='Read product records from a JSON file instead of looking them up'
)
@click.option(
    '--output', '-o',
    default=None,
    help='Output filename; the extension picks the format (default: pop-YYYYMMDD-HHMMSS.pdf)'
)
@click.option(
    '--template', '-t',
    default=None,
    help='Background image path or URL, or a backend template id'
)
@click.option(
    '--layout', '-l',
    type=click.Choice(['1', '2', '4']),
    default=None,
    help='Layout density: tags per printed page (default from config)'
)
@click.option(
    '--no-strike-price',
    is_flag=True,
    help='Hide the struck-through normal price'
)
@click.option(
    '--barcode',
    is_flag=True,
    help='Draw the decorative barcode placeholder'
)
@click.option(
    '--width', '-w',
    default=None,
    help='Page width with units (e.g., "210mm", "8.27in")'
)
@click.option(
    '--height', '-h',
    default=None,
    help='Page height with units (e.g., "297mm", "11.69in")'
)
@click.option(
    '--preview',
    type=int,
    default=None,
    help='Write a 1x PNG of this page index instead of exporting'
)
@click.option(
    '--print', 'print_job',
    is_flag=True,
    help='Send the pages to the printer instead of writing a file'
)
@click.option(
    '--printer',
    default=None,
    help='Printer name for --print (default from config, else the system default)'
)
@click.option(
    '--offline',
    is_flag=True,
    help='Use only the local catalog; do not contact the backend'
)
@click.option(
    '--verbose', '-v',
    is_flag=True,
    help='Enable verbose logging'
)
@click.option(
    '--clear-cache',
    is_flag=True,
    help='Clear stored credentials and session token from the system keychain'
)
@click.option(
    '--show-config',
    is_flag=True,
    help='Show configuration values and where they came from'
)
def main(skus: tuple, file: Optional[Path], products_json: Optional[Path], output: Optional[str],
         template: Optional[str], layout: Optional[str], no_strike_price: bool, barcode: bool,
         width: Optional[str], height: Optional[str], preview: Optional[int], print_job: bool,
         printer: Optional[str], offline: bool, verbose: bool, clear_cache: bool, show_config: bool):
    """Render POP price tags for products.

    SKUS: One or more product SKUs to render, one page each.

    Examples:
        poptag SKU001 SKU002 -o promo.pdf
        poptag --file skus.txt --layout 2 --template promo-bg.png
        poptag --products-json custom.json --preview 0 -o preview.png
    """
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    if clear_cache:
        from .keychain import clear_all_credentials
        clear_all_credentials()
        click.echo("All cached credentials have been cleared from the system keychain.")
        sys.exit(0)

    if show_config:
        config.print_config_sources(True)
        sys.exit(0)
    config.print_config_sources(verbose)

    if file and skus:
        click.echo("Error: Cannot specify both SKUs and --file option", err=True)
        sys.exit(1)

    try:
        sku_list = read_sku_file(file) if file else [normalize_sku(s) for s in skus]
    except OSError as e:
        click.echo(f"Error reading file {file}: {e}", err=True)
        sys.exit(1)

    try:
        json_products = read_product_records(products_json) if products_json else []
    except (OSError, ValueError, PopTagError) as e:
        click.echo(f"Error reading products from {products_json}: {e}", err=True)
        sys.exit(1)

    if not sku_list and not json_products:
        click.echo("Error: No products given. Pass SKUs, --file or --products-json.", err=True)
        click.echo("Use --help for usage information.", err=True)
        sys.exit(1)

    if bool(width) != bool(height):
        click.echo("Error: Both --width and --height must be specified together", err=True)
        sys.exit(1)
    try:
        page_width, page_height = page_size_points(width or config.get("PAGE_WIDTH"),
                                                   height or config.get("PAGE_HEIGHT"))
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    logger.info(f"Page size: {format_dimension_for_display(page_width)} x "
                f"{format_dimension_for_display(page_height)}")

    api = None
    if sku_list and not offline:
        api = connect_backend()
        if api is None:
            click.echo("Backend login failed; using the local catalog only.", err=True)

    try:
        density = LayoutDensity(layout or str(config.get("LAYOUT_DENSITY")))
    except ValueError:
        click.echo(f"Error: Invalid layout density {config.get('LAYOUT_DENSITY')!r}; use 1, 2 or 4", err=True)
        sys.exit(1)

    settings = PopSettings(
        show_strike_price=config.get_bool("SHOW_STRIKE_PRICE", True) and not no_strike_price,
        layout=density,
        show_barcode=barcode,
    )
    session = EditingSession(settings=settings, template=resolve_template(template, api))

    click.echo(f"Processing {len(sku_list) + len(json_products)} products...")
    with click.progressbar(sku_list, label='Looking up products') as bar:
        for sku in bar:
            product = api.fetch_product_by_sku(sku) if api else None
            if product is None:
                product = search_local_product(sku)
            if product is None:
                logger.warning(f"Product {sku} not found")
                continue
            try:
                session.add_product(product)
            except MalformedInput as e:
                logger.warning(str(e))

    for product in json_products:
        try:
            session.add_product(product)
        except MalformedInput as e:
            logger.warning(str(e))

    if not session.products:
        click.echo("No products were found.", err=True)
        sys.exit(1)

    image_processor = ImageProcessor(base_url=api.base_url if api else config.get("API_BASE_URL"),
                                     session=api.session if api else None)
    exporter = PopExporter(page_width, page_height, image_processor=image_processor)

    try:
        if preview is not None:
            output = output or get_default_output_filename("png")
            index = session.set_active_index(preview)
            image = exporter.render_preview(session.products, index, session.settings,
                                            session.template, session.item_transforms)
            image.save(output)
            click.echo(f"✓ Preview of page {index + 1} written to {output}")
            return

        if print_job:
            job = exporter.print_pages(session.products, session.settings, session.template,
                                       session.item_transforms,
                                       printer or config.get("PRINTER_NAME"))
            click.echo(f"✓ Sent {len(session.products)} page(s) to the printer: {job}")
            return

        output = output or get_default_output_filename()
        output_format = detect_format_from_filename(output)
        click.echo(f"Generating {output_format.value.upper()}...")
        output_path = exporter.generate(session.products, session.settings, output,
                                        output_format, session.template, session.item_transforms)
    except (ValueError, RuntimeError, OSError, PopTagError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(f"✓ POP pages generated successfully: {output_path}")
    click.echo(f"  - Total pages: {len(session.products)}")
    click.echo(f"  - Layout: {settings.layout.value} per page")
    if output_format != OutputFormat.PDF:
        click.echo(f"  - Resolution: {exporter.print_scale}x")


if __name__ == '__main__':
    main()
