# cli.py: terminal storefront and back-office
import os
import sys
import webbrowser
from datetime import datetime
from typing import List, Dict, Any, Optional

from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.prompt import IntPrompt, Confirm, Prompt
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.text import Text
from rich import box

from prompt_toolkit import prompt
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.styles import Style as PromptStyle

import requests

from sdk.proteina import StoreClient
from storefront.cart import CartStore, JsonFileStorage
from storefront.checkout import ContactStore, checkout, shipping_cost
from storefront.config import load_settings
from storefront.exceptions import CheckoutError
from storefront.formatting import format_currency, format_shipping
from storefront.logging_config import setup_logging
from storefront.models import CheckoutContact, ProductDetails

console = Console()
settings = load_settings()
c = StoreClient(base_url=os.getenv("STORE_URL", "http://127.0.0.1:8085"), token=os.getenv("STORE_TOKEN"))

storage = JsonFileStorage(settings.cart_storage_path)
cart = CartStore(storage)
contacts = ContactStore(storage)

# Global state for status messages and caching
status_message = "Ready"
product_cache: List[ProductDetails] = []

# Custom prompt style for prompt_toolkit
custom_style = PromptStyle.from_dict({
    'completion-menu.completion': 'bg:#880000 #ffffff',
    'completion-menu.completion.current': 'bg:#aa0000 #000000',
    'scrollbar.background': 'bg:#aa8888',
    'scrollbar.button': 'bg:#222222',
})


# ---------------------------
# Display helpers
# ---------------------------
def show_products(products: List[ProductDetails]):
    if not products:
        # empty can also mean the catalog could not be reached
        console.print("[italic yellow]No products found[/italic yellow]")
        return

    table = Table(
        title="💪 Catálogo",
        box=box.ROUNDED,
        header_style="bold red",
        title_style="bold magenta",
        show_lines=True
    )
    table.add_column("ID", style="dim", width=6)
    table.add_column("Nombre", style="bold", width=30)
    table.add_column("Precio", justify="right", width=14)
    table.add_column("Stock", justify="right", width=6)
    table.add_column("Categoría", width=15)
    table.add_column("Sabores", width=25)

    for p in products:
        name = p.nombre + (" [yellow](oferta)[/yellow]" if p.isOferta else "")
        table.add_row(
            str(p.id),
            name,
            format_currency(p.precio),
            str(p.cantidad_stock),
            p.categoria_info.descripcion if p.categoria_info else "N/A",
            ", ".join(f.descripcion for f in p.sabores_info) or "-",
        )
    console.print(table)


def show_cart():
    subtotal = cart.get_cart_total()
    shipping = shipping_cost(subtotal, bool(cart.items))

    title = Text()
    title.append("🛒 Carrito - ", style="bold")
    title.append(f"{cart.get_cart_items_count()} items", style="bold cyan")
    title.append(f" - Total: {format_currency(subtotal + shipping)}", style="bold green")

    if not cart.items:
        console.print(Panel("Tu carrito está vacío 🛍️", title=title, style="blue"))
        return

    table = Table(box=box.ROUNDED, header_style="bold blue", show_lines=True)
    table.add_column("#", style="dim", width=3)
    table.add_column("Producto", style="bold", width=30)
    table.add_column("Sabor", width=12)
    table.add_column("Cant", justify="right", width=6)
    table.add_column("c/u", justify="right", width=14)
    table.add_column("Subtotal", justify="right", width=14)

    for idx, it in enumerate(cart.items, start=1):
        table.add_row(
            str(idx),
            it.producto.nombre,
            it.sabor_seleccionado.descripcion if it.sabor_seleccionado else "-",
            str(it.quantity),
            format_currency(it.producto.precio),
            format_currency(it.producto.precio * it.quantity),
        )
    table.add_row("", "Envío", "", "", "", format_shipping(shipping))
    console.print(Panel(table, title=title, border_style="blue"))


def show_admin_products(rows: List[Dict[str, Any]]):
    table = Table(title="🗂️ Productos (admin)", box=box.ROUNDED, header_style="bold yellow", show_lines=True)
    table.add_column("ID", style="dim", width=6)
    table.add_column("Nombre", width=30)
    table.add_column("Precio", justify="right", width=14)
    table.add_column("Stock", justify="right", width=6)
    table.add_column("Activo", width=7)
    table.add_column("Oferta", width=7)
    for r in rows:
        table.add_row(
            str(r.get("id")),
            r.get("nombre", "N/A"),
            format_currency(r.get("precio", 0)),
            str(r.get("cantidad_stock", 0)),
            "✅" if r.get("isActivo") else "-",
            "✅" if r.get("isOferta") else "-",
        )
    console.print(table)


def show_status(message: str, is_success: bool = True):
    style = "green" if is_success else "red"
    return Panel.fit(f"[{style}]{message}[/{style}]", title="Status")


# ---------------------------
# API wrapper with error reporting
# ---------------------------
def try_api(fn, *args, success_msg: Optional[str] = None, **kwargs):
    """
    Calls fn(*args, **kwargs) behind a spinner.
    Returns the result, or None after printing the API's error message.
    """
    global status_message
    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            transient=True,
        ) as progress:
            progress.add_task(description="Processing...", total=None)
            result = fn(*args, **kwargs)

        if success_msg:
            status_message = success_msg
            console.print(show_status(success_msg, True))
        return result
    except requests.exceptions.HTTPError as e:
        status_message = f"Error: {c.error_message(e)}"
    except requests.exceptions.RequestException as e:
        status_message = f"Error: {e}"
    console.print(show_status(status_message, False))
    return None


def load_products(fn, *args, **kwargs) -> List[ProductDetails]:
    rows = try_api(fn, *args, **kwargs) or []
    return [ProductDetails.model_validate(r) for r in rows]


# ---------------------------
# Autocompletion helpers
# ---------------------------
def get_product_completer():
    global product_cache
    if not product_cache:
        product_cache = load_products(c.list_products)
    return WordCompleter([str(p.id) for p in product_cache], ignore_case=True)


def find_product(pid: str) -> Optional[ProductDetails]:
    for p in product_cache:
        if str(p.id) == pid.strip():
            return p
    return None


def create_header():
    header = Table(show_header=False, box=box.ROUNDED)
    header.add_column("left", width=30)
    header.add_column("center", width=40)
    header.add_column("right", width=30)

    now = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    header.add_row(
        "💪 Proteína Pura",
        "[bold red]Tienda y back-office[/bold red]",
        f"[dim]{now}[/dim]"
    )
    return Panel(header, style="bold red")


def prompt_with_autocomplete(message: str, completer=None, default: str = ""):
    return prompt(f"{message} ", completer=completer, style=custom_style, default=default)


def ask_float(message: str, default: float = 0.0) -> float:
    while True:
        raw = Prompt.ask(message, default=str(default))
        try:
            return float(raw)
        except ValueError:
            console.print("[red]Please enter a valid number.[/red]")


def ask_flavor(product: ProductDetails):
    if not product.sabores_info:
        return None
    names = {f.descripcion.lower(): f for f in product.sabores_info}
    while True:
        raw = prompt_with_autocomplete(
            f"Sabor ({', '.join(f.descripcion for f in product.sabores_info)})",
            completer=WordCompleter([f.descripcion for f in product.sabores_info], ignore_case=True),
        ).strip().lower()
        if raw in names:
            return names[raw]
        console.print("[red]Elige uno de los sabores listados.[/red]")


def pick_cart_line():
    if not cart.items:
        console.print("[italic yellow]Tu carrito está vacío[/italic yellow]")
        return None
    show_cart()
    idx = IntPrompt.ask("Línea #", default=1)
    if idx < 1 or idx > len(cart.items):
        console.print("[red]No existe esa línea[/red]")
        return None
    return cart.items[idx - 1]


# ---------------------------
# Storefront actions
# ---------------------------
def do_add_to_cart():
    pid = prompt_with_autocomplete("ID de producto", completer=get_product_completer())
    product = find_product(pid)
    if product is None:
        console.print(f"[red]Producto {pid} no encontrado[/red]")
        return
    flavor = ask_flavor(product)
    cart.add_to_cart(product, flavor)
    console.print(show_status(f"{product.nombre} agregado al carrito"))
    show_cart()


def do_update_quantity():
    line = pick_cart_line()
    if line is None:
        return
    qty = IntPrompt.ask("Nueva cantidad (0 elimina)", default=line.quantity)
    flavor_id = line.sabor_seleccionado.id if line.sabor_seleccionado else None
    cart.update_quantity(line.producto.id, flavor_id, qty)
    show_cart()


def do_remove_line():
    line = pick_cart_line()
    if line is None:
        return
    flavor_id = line.sabor_seleccionado.id if line.sabor_seleccionado else None
    cart.remove_from_cart(line.producto.id, flavor_id)
    show_cart()


def do_checkout():
    saved = contacts.load()
    contact = CheckoutContact(
        fullName=Prompt.ask("Nombre completo", default=saved.fullName),
        ciRuc=Prompt.ask("CI/RUC", default=saved.ciRuc),
        address=Prompt.ask("Dirección", default=saved.address),
    )
    contacts.save(contact)
    try:
        url = checkout(cart, contact, settings.shop_phone)
    except CheckoutError as e:
        console.print(show_status(e.message, False))
        return
    console.print(Panel.fit(f"[green]Pedido listo para enviar[/green]\n{url}", title="📲 WhatsApp"))
    if Confirm.ask("¿Abrir en el navegador?"):
        webbrowser.open(url)


# ---------------------------
# Admin actions
# ---------------------------
def ensure_token() -> bool:
    if "Authorization" in c.session.headers:
        return True
    token = Prompt.ask("Admin bearer token", password=True)
    if not token:
        return False
    c.set_token(token)
    return True


def do_admin_create():
    categories = try_api(c.admin_categories) or []
    flavors = try_api(c.admin_flavors) or []
    if categories:
        console.print("Categorías: " + ", ".join(f"{x['id']}={x['descripcion']}" for x in categories))
    if flavors:
        console.print("Sabores: " + ", ".join(f"{x['id']}={x['descripcion']}" for x in flavors))

    raw_flavors = Prompt.ask("IDs de sabores (coma)", default="")
    fields = {
        "nombre": Prompt.ask("Nombre"),
        "descripcion": Prompt.ask("Descripción", default="") or None,
        "precio": ask_float("Precio (Gs.)", default=0),
        "categoria": IntPrompt.ask("Categoría ID"),
        "cantidad_stock": IntPrompt.ask("Stock", default=0),
        "isOferta": Confirm.ask("¿En oferta?", default=False),
        "sabores": [int(x) for x in raw_flavors.split(",") if x.strip().isdigit()],
        "url_imagen": Prompt.ask("URL de imagen", default=""),
    }
    created = try_api(c.create_product, success_msg="Producto creado", **fields)
    if created:
        show_admin_products([created])


def do_admin_update():
    pid = IntPrompt.ask("ID de producto")
    changes: Dict[str, Any] = {}
    if Confirm.ask("¿Cambiar precio?", default=False):
        changes["precio"] = ask_float("Precio (Gs.)")
    if Confirm.ask("¿Cambiar stock?", default=False):
        changes["cantidad_stock"] = IntPrompt.ask("Stock")
    if Confirm.ask("¿Cambiar estado activo?", default=False):
        changes["isActivo"] = Confirm.ask("¿Activo?", default=True)
    if Confirm.ask("¿Cambiar oferta?", default=False):
        changes["isOferta"] = Confirm.ask("¿En oferta?", default=False)
    if not changes:
        console.print("[yellow]Nada que actualizar[/yellow]")
        return
    updated = try_api(c.update_product, pid, success_msg=f"Producto {pid} actualizado", **changes)
    if updated:
        show_admin_products([updated])


def do_admin_upload():
    file_path = prompt_with_autocomplete("Archivo de imagen").strip()
    if not os.path.isfile(file_path):
        console.print(f"[red]No existe el archivo {file_path}[/red]")
        return
    resp = try_api(c.upload_image, file_path, success_msg="Imagen subida")
    if resp:
        console.print(Panel.fit(f"{resp['bucket']}/{resp['path']}\n[link]{resp['publicUrl']}[/link]", title="🖼️ Imagen"))
        if Confirm.ask("¿Asignarla a un producto?", default=False):
            pid = IntPrompt.ask("ID de producto")
            try_api(c.update_product, pid, success_msg=f"Imagen asignada a {pid}", url_imagen=resp["publicUrl"])


# ---------------------------
# Main menu
# ---------------------------
def menu():
    global status_message, product_cache

    console.clear()
    console.print(create_header())
    product_cache = load_products(c.list_products)

    while True:
        if status_message:
            console.print(show_status(status_message, "Error" not in status_message))

        menu_table = Table.grid(padding=(0, 2))
        menu_table.add_column("Key", style="bold cyan", width=4)
        menu_table.add_column("Option", width=30)
        menu_table.add_column("Key", style="bold cyan", width=4)
        menu_table.add_column("Option", width=30)

        options = [
            ("1", "📦 Ver productos", "9", "📲 Enviar pedido (WhatsApp)"),
            ("2", "🔥 Ofertas", "10", "🗂️ Admin: listar productos"),
            ("3", "🔍 Buscar", "11", "➕ Admin: crear producto"),
            ("4", "🏷️ Por categoría", "12", "✏️ Admin: editar producto"),
            ("5", "🛒 Agregar al carrito", "13", "🗑️ Admin: eliminar producto"),
            ("6", "🔢 Cambiar cantidad", "14", "🖼️ Admin: subir imagen"),
            ("7", "➖ Quitar del carrito", "", ""),
            ("8", "🧾 Ver carrito / vaciar", "q", "👋 Salir"),
        ]
        for row in options:
            menu_table.add_row(*row)
        console.print(Panel(menu_table, title="📋 Menú", border_style="yellow"))

        choice = prompt_with_autocomplete(
            "\nElige una opción",
            completer=WordCompleter([str(i) for i in range(1, 15)] + ["q", "quit", "exit"])
        ).strip()

        if choice == "1":
            product_cache = load_products(c.list_products)
            show_products(product_cache)

        elif choice == "2":
            show_products(load_products(c.featured_products))

        elif choice == "3":
            term = prompt_with_autocomplete("Término de búsqueda")
            if term.strip():
                show_products(load_products(c.search_products, term))

        elif choice == "4":
            categories = try_api(c.list_categories) or []
            names = {x["descripcion"].lower(): x["id"] for x in categories}
            raw = prompt_with_autocomplete(
                "Categoría", completer=WordCompleter([x["descripcion"] for x in categories], ignore_case=True)
            ).strip().lower()
            if raw in names:
                show_products(load_products(c.products_by_category, names[raw]))
            else:
                console.print("[red]Categoría desconocida[/red]")

        elif choice == "5":
            do_add_to_cart()

        elif choice == "6":
            do_update_quantity()

        elif choice == "7":
            do_remove_line()

        elif choice == "8":
            show_cart()
            if cart.items and Confirm.ask("¿Vaciar el carrito?", default=False):
                cart.clear_cart()
                console.print(show_status("Carrito vaciado"))

        elif choice == "9":
            do_checkout()

        elif choice in ("10", "11", "12", "13", "14"):
            if not ensure_token():
                continue
            if choice == "10":
                rows = try_api(c.admin_products, success_msg="Productos cargados")
                if rows is not None:
                    show_admin_products(rows)
            elif choice == "11":
                do_admin_create()
            elif choice == "12":
                do_admin_update()
            elif choice == "13":
                pid = IntPrompt.ask("ID de producto")
                if Confirm.ask(f"[red]¿Eliminar el producto {pid}?[/red]"):
                    try_api(c.delete_product, pid, success_msg=f"Producto {pid} eliminado")
            elif choice == "14":
                do_admin_upload()
            product_cache = []

        elif choice.lower() in ("q", "quit", "exit"):
            if Confirm.ask("¿Seguro que quieres salir?"):
                console.print(Panel.fit("[bold green]¡Gracias por tu visita! 👋[/bold green]", title="Hasta luego"))
                sys.exit(0)

        console.print()
        console.rule(style="dim")


if __name__ == "__main__":
    setup_logging(settings)
    try:
        menu()
    except KeyboardInterrupt:
        console.print("\n\n[bold red]Interrupted by user[/bold red]")
        sys.exit(1)
