"""Sale registration tests: happy path, customer upsert, rollback, totals."""
import tempfile
import unittest
from datetime import datetime
from pathlib import Path

import db
import queries
import sales


def order(**overrides):
    payload = {
        'nombre': 'Ana',
        'email': 'ana@example.com',
        'telefono': '3001234567',
        'direccion': 'Calle 5 #3-20',
        'metodo_entrega': 'domicilio',
        'metodo_pago': 'efectivo',
        'productos': [{'nombre': 'Papas Locas Clásicas', 'cantidad': 2, 'precio': 20}],
        'total': 40,
    }
    payload.update(overrides)
    return payload


def count(store, table):
    with store.connection() as conn:
        return conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]


class RegisterSaleTestCase(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.store = db.Store(Path(self.temp_dir.name) / "test.db", pool_size=2)
        db.init_db(self.store)

    def tearDown(self):
        self.store.close()
        self.temp_dir.cleanup()

    def test_registers_customer_sale_and_line(self):
        result = sales.register_sale(self.store, order(), now=datetime(2026, 10, 19, 12, 30, 5))
        self.assertEqual(result['total'], 40)
        self.assertEqual(result['fecha_venta'], '2026-10-19 12:30:05')

        detail = queries.get_sale(self.store, result['id_venta'])
        venta = detail['venta']
        self.assertEqual(venta['id_cliente'], result['id_cliente'])
        self.assertEqual(venta['estado'], 'Pendiente')
        self.assertEqual(venta['total'], 40)
        self.assertEqual(venta['subtotal'], 40)
        self.assertEqual(venta['nombre_completo'], 'Ana')
        self.assertEqual(venta['direccion_entrega'], 'Calle 5 #3-20')
        self.assertEqual(len(detail['productos']), 1)
        line = detail['productos'][0]
        self.assertEqual(line['producto_nombre'], 'Papas Locas Clásicas')
        self.assertEqual(line['cantidad'], 2)
        self.assertEqual(line['precio_unitario'], 20)
        self.assertEqual(line['subtotal'], 40)
        self.assertEqual(count(self.store, 'clientes'), 1)

    def test_line_items_keep_cart_order_and_sum_to_total(self):
        cart = [
            {'nombre': 'Gaseosa', 'cantidad': 3, 'precio': 5},
            {'nombre': 'Combo Familiar', 'cantidad': 1, 'precio': 100},
            {'nombre': 'Papas Locas Clásicas', 'cantidad': 1, 'precio': 20},
        ]
        result = sales.register_sale(self.store, order(productos=cart, total=135))
        detail = queries.get_sale(self.store, result['id_venta'])
        names = [p['producto_nombre'] for p in detail['productos']]
        self.assertEqual(names, ['Gaseosa', 'Combo Familiar', 'Papas Locas Clásicas'])
        self.assertAlmostEqual(sum(p['subtotal'] for p in detail['productos']), detail['venta']['total'])

    def test_client_unit_price_is_ignored(self):
        cart = [{'nombre': 'Papas Locas Clásicas', 'cantidad': 2, 'precio': 1}]
        result = sales.register_sale(self.store, order(productos=cart, total=40))
        line = queries.get_sale(self.store, result['id_venta'])['productos'][0]
        self.assertEqual(line['precio_unitario'], 20)
        self.assertEqual(line['subtotal'], 40)

    def test_unknown_product_rolls_back_everything(self):
        cart = [
            {'nombre': 'Papas Locas Clásicas', 'cantidad': 1, 'precio': 20},
            {'nombre': 'Producto Inexistente', 'cantidad': 1, 'precio': 10},
        ]
        with self.assertRaises(sales.ProductNotFoundError) as ctx:
            sales.register_sale(self.store, order(productos=cart, total=30))
        self.assertIn('Producto Inexistente', ctx.exception.message)
        self.assertEqual(count(self.store, 'clientes'), 0)
        self.assertEqual(count(self.store, 'ventas'), 0)
        self.assertEqual(count(self.store, 'detalle_ventas'), 0)

    def test_failed_sale_does_not_touch_existing_customer(self):
        sales.register_sale(self.store, order())
        bad = order(nombre='Ana María', email='otra@example.com',
                    productos=[{'nombre': 'Producto Inexistente', 'cantidad': 1, 'precio': 10}], total=10)
        with self.assertRaises(sales.ProductNotFoundError):
            sales.register_sale(self.store, bad)
        with self.store.connection() as conn:
            row = conn.execute("SELECT nombre_completo, email FROM clientes").fetchone()
        self.assertEqual((row['nombre_completo'], row['email']), ('Ana', 'ana@example.com'))
        self.assertEqual(count(self.store, 'ventas'), 1)

    def test_inactive_product_is_not_orderable(self):
        db.set_product_active(self.store, 'Pizza Artesanal', False)
        cart = [{'nombre': 'Pizza Artesanal', 'cantidad': 1, 'precio': 35}]
        with self.assertRaises(sales.ProductNotFoundError):
            sales.register_sale(self.store, order(productos=cart, total=35))
        self.assertEqual(count(self.store, 'ventas'), 0)

    def test_same_phone_updates_customer(self):
        first = sales.register_sale(self.store, order())
        second = sales.register_sale(self.store, order(nombre='Ana Gómez', email='ana.g@example.com', direccion=None))
        self.assertEqual(first['id_cliente'], second['id_cliente'])
        self.assertEqual(count(self.store, 'clientes'), 1)
        with self.store.connection() as conn:
            row = conn.execute("SELECT * FROM clientes WHERE telefono = ?", ('3001234567',)).fetchone()
        self.assertEqual(row['nombre_completo'], 'Ana Gómez')
        self.assertEqual(row['email'], 'ana.g@example.com')
        self.assertIsNone(row['direccion'])

    def test_identical_calls_create_distinct_sales(self):
        a = sales.register_sale(self.store, order())
        b = sales.register_sale(self.store, order())
        self.assertNotEqual(a['id_venta'], b['id_venta'])
        self.assertEqual(count(self.store, 'ventas'), 2)
        self.assertEqual(count(self.store, 'detalle_ventas'), 2)

    def test_total_mismatch_is_rejected_and_rolled_back(self):
        with self.assertRaises(sales.TotalMismatchError) as ctx:
            sales.register_sale(self.store, order(total=10))
        self.assertEqual(ctx.exception.computed, 40)
        self.assertEqual(ctx.exception.declared, 10)
        self.assertEqual(count(self.store, 'clientes'), 0)
        self.assertEqual(count(self.store, 'ventas'), 0)

    def test_total_within_a_cent_is_accepted(self):
        result = sales.register_sale(self.store, order(total=40.005))
        self.assertEqual(result['total'], 40)


class ValidatePayloadTestCase(unittest.TestCase):
    def test_missing_fields_are_listed(self):
        with self.assertRaises(sales.ValidationError) as ctx:
            sales.validate_payload(order(email='', metodo_pago=None))
        self.assertIn('email', ctx.exception.message)
        self.assertIn('metodo_pago', ctx.exception.message)

    def test_blank_strings_count_as_missing(self):
        with self.assertRaises(sales.ValidationError):
            sales.validate_payload(order(nombre='   '))

    def test_empty_cart(self):
        with self.assertRaises(sales.ValidationError):
            sales.validate_payload(order(productos=[]))

    def test_cart_must_be_a_list(self):
        with self.assertRaises(sales.ValidationError) as ctx:
            sales.validate_payload(order(productos={'nombre': 'Gaseosa'}))
        self.assertIn('al menos un producto', ctx.exception.message)

    def test_bad_quantities(self):
        for cantidad in (0, -1, 1.5, '2', True, None, float('nan'), float('inf'), 10**20, sales.MAX_QUANTITY + 1):
            with self.subTest(cantidad=cantidad):
                with self.assertRaises(sales.ValidationError):
                    sales.validate_payload(order(productos=[{'nombre': 'Gaseosa', 'cantidad': cantidad}]))

    def test_largest_quantity_is_accepted(self):
        data = sales.validate_payload(order(productos=[{'nombre': 'Gaseosa', 'cantidad': float(sales.MAX_QUANTITY)}]))
        self.assertEqual(data['productos'][0]['cantidad'], sales.MAX_QUANTITY)

    def test_non_finite_total(self):
        for total in (float('nan'), float('inf'), float('-inf'), 'nan', 10**400):
            with self.subTest(total=total):
                with self.assertRaises(sales.ValidationError):
                    sales.validate_payload(order(total=total))

    def test_entry_without_name(self):
        with self.assertRaises(sales.ValidationError):
            sales.validate_payload(order(productos=[{'cantidad': 1}]))

    def test_non_numeric_total(self):
        with self.assertRaises(sales.ValidationError):
            sales.validate_payload(order(total='cuarenta'))

    def test_not_an_object(self):
        with self.assertRaises(sales.ValidationError):
            sales.validate_payload(['nombre'])

    def test_cleans_values(self):
        data = sales.validate_payload(order(nombre='  Ana ', direccion='', total='40'))
        self.assertEqual(data['nombre'], 'Ana')
        self.assertIsNone(data['direccion'])
        self.assertEqual(data['total'], 40.0)
        self.assertEqual(data['productos'], [{'nombre': 'Papas Locas Clásicas', 'cantidad': 2}])

    def test_validation_happens_before_any_write(self):
        with tempfile.TemporaryDirectory() as tmp:
            store = db.Store(Path(tmp) / "v.db", pool_size=1)
            db.init_db(store)
            with self.assertRaises(sales.ValidationError):
                sales.register_sale(store, order(productos=[]))
            self.assertEqual(count(store, 'clientes'), 0)
            store.close()


if __name__ == '__main__':
    unittest.main()
