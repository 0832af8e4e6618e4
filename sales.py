"""Sale registration: customer upsert + sale + line items in one transaction.

Payload (JSON body of POST /api/ventas/registrar):

    {
      "nombre": str, "email": str, "telefono": str, "direccion": str | null,
      "metodo_entrega": str, "metodo_pago": str,
      "productos": [{"nombre": str, "cantidad": int, "precio": number}, ...],
      "total": number
    }

Unit prices always come from the catalog; the per-item "precio" sent by the
client is ignored. The declared "total" must match the sum of the computed
line subtotals or the whole registration is rolled back.
"""
from datetime import datetime
import math

from db import Store, STATUS_PENDING, now_local
from logger import get_logger

_logger = get_logger(__name__)

REQUIRED_FIELDS = ('nombre', 'email', 'telefono', 'metodo_entrega', 'metodo_pago', 'productos', 'total')
TOTAL_TOLERANCE = 0.01
MAX_QUANTITY = 1000


class SaleError(Exception):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(SaleError):
    """Request rejected before any write."""


class TotalMismatchError(ValidationError):
    def __init__(self, declared: float, computed: float):
        super().__init__(f"El total declarado ({declared:.2f}) no coincide con el total calculado ({computed:.2f})")
        self.declared = declared
        self.computed = computed


class ProductNotFoundError(SaleError):
    def __init__(self, nombre: str):
        super().__init__(f"Producto no encontrado: {nombre}")
        self.nombre = nombre


def _text(value) -> str:
    if value is None:
        return ''
    return str(value).strip()


def _number(value, field: str) -> float:
    if isinstance(value, bool):
        raise ValidationError(f"{field} debe ser numérico")
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        raise ValidationError(f"{field} debe ser numérico") from None
    if not math.isfinite(number):
        raise ValidationError(f"{field} debe ser numérico")
    return number


def _quantity(value, nombre: str) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"Cantidad inválida para {nombre}")
    if isinstance(value, float):
        if not math.isfinite(value) or not value.is_integer():
            raise ValidationError(f"Cantidad inválida para {nombre}")
        value = int(value)
    if value <= 0 or value > MAX_QUANTITY:
        raise ValidationError(f"Cantidad inválida para {nombre} (1 a {MAX_QUANTITY})")
    return value


def validate_payload(payload) -> dict:
    """Check a registration payload and return a cleaned copy.

    Raises ValidationError on the first problem found.
    """
    if not isinstance(payload, dict):
        raise ValidationError("El cuerpo de la solicitud debe ser un objeto JSON")
    missing = [f for f in REQUIRED_FIELDS if payload.get(f) in (None, '', [], {}) or (isinstance(payload.get(f), str) and not payload[f].strip())]
    if missing:
        raise ValidationError(f"Faltan datos obligatorios: {', '.join(missing)}")

    productos = payload['productos']
    if not isinstance(productos, list) or not productos:
        raise ValidationError("Debe incluir al menos un producto")

    items = []
    for pos, item in enumerate(productos, start=1):
        if not isinstance(item, dict):
            raise ValidationError(f"Producto #{pos} inválido")
        nombre = _text(item.get('nombre'))
        if not nombre:
            raise ValidationError(f"Producto #{pos} sin nombre")
        items.append({'nombre': nombre, 'cantidad': _quantity(item.get('cantidad'), nombre)})

    total = _number(payload['total'], 'total')
    if total <= 0:
        raise ValidationError("El total debe ser mayor que cero")

    return {
        'nombre': _text(payload['nombre']),
        'email': _text(payload['email']),
        'telefono': _text(payload['telefono']),
        'direccion': _text(payload.get('direccion')) or None,
        'metodo_entrega': _text(payload['metodo_entrega']),
        'metodo_pago': _text(payload['metodo_pago']),
        'productos': items,
        'total': total,
    }


def _upsert_customer(conn, data: dict, now: str) -> int:
    row = conn.execute("SELECT id_cliente FROM clientes WHERE telefono = ?", (data['telefono'],)).fetchone()
    if row is not None:
        id_cliente = row['id_cliente']
        conn.execute(
            "UPDATE clientes SET nombre_completo = ?, email = ?, direccion = ? WHERE id_cliente = ?",
            (data['nombre'], data['email'], data['direccion'], id_cliente),
        )
        return id_cliente
    cur = conn.execute(
        "INSERT INTO clientes (nombre_completo, email, telefono, direccion, fecha_registro) VALUES (?, ?, ?, ?, ?)",
        (data['nombre'], data['email'], data['telefono'], data['direccion'], now),
    )
    return cur.lastrowid


def _price_lines(conn, items: list) -> list:
    lines = []
    for item in items:
        r = conn.execute(
            "SELECT id_producto, precio FROM productos WHERE nombre = ? AND activo = 1",
            (item['nombre'],),
        ).fetchone()
        if r is None:
            raise ProductNotFoundError(item['nombre'])
        precio = float(r['precio'])
        lines.append({
            'id_producto': r['id_producto'],
            'cantidad': item['cantidad'],
            'precio_unitario': precio,
            'subtotal': round(item['cantidad'] * precio, 2),
        })
    return lines


def register_sale(store: Store, payload, now: datetime | None = None) -> dict:
    """Register one sale atomically and return its ids, total and timestamp.

    Nothing is written unless every step succeeds.
    """
    data = validate_payload(payload)
    ts = now.replace(microsecond=0).strftime('%Y-%m-%d %H:%M:%S') if now else now_local()
    try:
        with store.transaction() as conn:
            id_cliente = _upsert_customer(conn, data, ts)
            lines = _price_lines(conn, data['productos'])
            total = round(sum(line['subtotal'] for line in lines), 2)
            if abs(total - data['total']) > TOTAL_TOLERANCE:
                raise TotalMismatchError(data['total'], total)

            cur = conn.execute(
                """
                INSERT INTO ventas (id_cliente, fecha_venta, metodo_entrega, metodo_pago, direccion_entrega, subtotal, total, estado)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (id_cliente, ts, data['metodo_entrega'], data['metodo_pago'], data['direccion'], total, total, STATUS_PENDING),
            )
            id_venta = cur.lastrowid
            for line in lines:
                conn.execute(
                    "INSERT INTO detalle_ventas (id_venta, id_producto, cantidad, precio_unitario, subtotal) VALUES (?, ?, ?, ?, ?)",
                    (id_venta, line['id_producto'], line['cantidad'], line['precio_unitario'], line['subtotal']),
                )
    except SaleError as e:
        _logger.warning(f"Sale for {data['telefono']} rolled back: {e.message}")
        raise
    except Exception as e:
        _logger.error(f"Sale for {data['telefono']} rolled back: {e}")
        raise

    _logger.info(f"Registered sale {id_venta} for customer {id_cliente} total {total:.2f}")
    return {
        'id_venta': id_venta,
        'id_cliente': id_cliente,
        'total': total,
        'fecha_venta': ts,
    }
