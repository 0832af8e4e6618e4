"""Read-only lookups behind the GET endpoints.

Each function borrows its own pooled connection and returns plain dicts.
A missing row is reported as None, never as an exception.
"""
from datetime import date

from db import Store, STATUS_CANCELLED

PRODUCT_COLUMNS = "id_producto, nombre, categoria, precio, activo"


def list_products(store: Store):
    with store.connection() as conn:
        rows = conn.execute(f"SELECT {PRODUCT_COLUMNS} FROM productos WHERE activo = 1 ORDER BY categoria, nombre").fetchall()
    return [dict(r) for r in rows]


def get_product_by_name(store: Store, nombre: str):
    with store.connection() as conn:
        r = conn.execute(f"SELECT {PRODUCT_COLUMNS} FROM productos WHERE nombre = ? AND activo = 1", (nombre,)).fetchone()
    return dict(r) if r else None


def list_recent_sales(store: Store, limit: int = 50):
    with store.connection() as conn:
        rows = conn.execute(
            "SELECT * FROM vista_ventas_completas ORDER BY fecha_venta DESC, id_venta DESC LIMIT ?",
            (int(limit),),
        ).fetchall()
    return [dict(r) for r in rows]


def get_sale(store: Store, id_venta: int):
    """Return {"venta": ..., "productos": [...]} for one sale, or None."""
    with store.connection() as conn:
        venta = conn.execute(
            """
            SELECT v.*, c.nombre_completo, c.email, c.telefono
            FROM ventas v
            JOIN clientes c ON c.id_cliente = v.id_cliente
            WHERE v.id_venta = ?
            """,
            (id_venta,),
        ).fetchone()
        if venta is None:
            return None
        detalles = conn.execute(
            """
            SELECT d.*, p.nombre AS producto_nombre
            FROM detalle_ventas d
            JOIN productos p ON p.id_producto = d.id_producto
            WHERE d.id_venta = ?
            ORDER BY d.id_detalle
            """,
            (id_venta,),
        ).fetchall()
    return {"venta": dict(venta), "productos": [dict(d) for d in detalles]}


def daily_stats(store: Store, day: date | None = None) -> dict:
    """Count, revenue and average ticket for one local date, ignoring cancelled sales.

    With no sales the aggregates come back as None and total_ventas as 0.
    """
    if day is None:
        day = date.today()
    with store.connection() as conn:
        r = conn.execute(
            """
            SELECT COUNT(*) AS total_ventas,
                   SUM(total) AS ingresos_totales,
                   AVG(total) AS ticket_promedio
            FROM ventas
            WHERE date(fecha_venta) = ? AND estado != ?
            """,
            (day.isoformat(), STATUS_CANCELLED),
        ).fetchone()
    stats = dict(r)
    stats["fecha"] = day.isoformat()
    return stats
