"""Add, hide or re-enable catalog products and print the active menu.

Usage:
  python scripts/seed_products.py                          # just list
  python scripts/seed_products.py "Salchipapa" 22 Papas     # add one product
  python scripts/seed_products.py --disable "Gaseosa"      # take off the menu
  python scripts/seed_products.py --enable "Gaseosa"       # put back on the menu
"""
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))
from config import Config
from db import Store, init_db, add_product, set_product_active
from queries import list_products, get_product_by_name

store = Store.from_config(Config.from_env())
init_db(store)

args = sys.argv[1:]
if len(args) == 2 and args[0] in ('--disable', '--enable'):
    name, active = args[1], args[0] == '--enable'
    if set_product_active(store, name, active):
        print(f"{'Enabled' if active else 'Disabled'}: {name}")
    else:
        print(f"No product named {name}")
elif len(args) >= 2:
    name, price = args[0], float(args[1])
    category = args[2] if len(args) > 2 else 'General'
    existing = get_product_by_name(store, name)
    if existing:
        print(f"Exists: {name} @ {existing['precio']}")
    else:
        p = add_product(store, name, price, categoria=category)
        print(f"Added: {p['nombre']} (id={p['id_producto']}) @ {p['precio']}")

print('\nActive menu:')
for p in list_products(store):
    print(f" - {p['id_producto']}: [{p['categoria']}] {p['nombre']} @ {p['precio']}")
store.close()
