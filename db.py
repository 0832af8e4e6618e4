"""SQLite storage for the Papas Locas ordering backend.

Tables:
- productos(id_producto, nombre UNIQUE, categoria, precio, activo)
- clientes(id_cliente, nombre_completo, email, telefono UNIQUE, direccion, fecha_registro)
- ventas(id_venta, id_cliente, fecha_venta, metodo_entrega, metodo_pago, direccion_entrega, subtotal, total, estado)
- detalle_ventas(id_detalle, id_venta, id_producto, cantidad, precio_unitario, subtotal)
- vista_ventas_completas: ventas joined with the customer and line aggregates

All access goes through a `Store`, which owns a small pool of sqlite3
connections. Build one and pass it to whatever needs the database.
"""
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
import queue
import sqlite3
import threading

from logger import get_logger

_logger = get_logger(__name__)

STATUS_PENDING = 'Pendiente'
STATUS_CANCELLED = 'Cancelado'

# (nombre, categoria, precio)
DEFAULT_PRODUCTS = [
    ("Papas Locas Clásicas", "Papas", 20.0),
    ("Papas Locas Especiales", "Papas", 28.0),
    ("Hamburguesa Premium", "Hamburguesas", 25.0),
    ("Picada Tradicional", "Picadas", 45.0),
    ("Sándwich Especial", "Sándwiches", 18.0),
    ("Pizza Artesanal", "Pizzas", 35.0),
    ("Combo Personal", "Combos", 60.0),
    ("Combo Familiar", "Combos", 100.0),
    ("Combo Extra", "Combos", 80.0),
    ("Gaseosa", "Bebidas", 5.0),
    ("Limonada Natural", "Bebidas", 6.0),
]

SCHEMA = """
CREATE TABLE IF NOT EXISTS productos (
    id_producto INTEGER PRIMARY KEY,
    nombre TEXT NOT NULL UNIQUE,
    categoria TEXT NOT NULL DEFAULT 'General',
    precio REAL NOT NULL CHECK (precio >= 0),
    activo INTEGER NOT NULL DEFAULT 1
);

CREATE TABLE IF NOT EXISTS clientes (
    id_cliente INTEGER PRIMARY KEY,
    nombre_completo TEXT NOT NULL,
    email TEXT NOT NULL,
    telefono TEXT NOT NULL UNIQUE,
    direccion TEXT,
    fecha_registro TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS ventas (
    id_venta INTEGER PRIMARY KEY,
    id_cliente INTEGER NOT NULL,
    fecha_venta TEXT NOT NULL,
    metodo_entrega TEXT NOT NULL,
    metodo_pago TEXT NOT NULL,
    direccion_entrega TEXT,
    subtotal REAL NOT NULL,
    total REAL NOT NULL,
    estado TEXT NOT NULL DEFAULT 'Pendiente',
    FOREIGN KEY(id_cliente) REFERENCES clientes(id_cliente)
);

CREATE TABLE IF NOT EXISTS detalle_ventas (
    id_detalle INTEGER PRIMARY KEY,
    id_venta INTEGER NOT NULL,
    id_producto INTEGER NOT NULL,
    cantidad INTEGER NOT NULL CHECK (cantidad > 0),
    precio_unitario REAL NOT NULL,
    subtotal REAL NOT NULL,
    FOREIGN KEY(id_venta) REFERENCES ventas(id_venta),
    FOREIGN KEY(id_producto) REFERENCES productos(id_producto)
);

CREATE INDEX IF NOT EXISTS idx_ventas_fecha ON ventas(fecha_venta);
CREATE INDEX IF NOT EXISTS idx_detalle_venta ON detalle_ventas(id_venta);

CREATE VIEW IF NOT EXISTS vista_ventas_completas AS
SELECT
    v.id_venta,
    v.fecha_venta,
    v.id_cliente,
    c.nombre_completo,
    c.email,
    c.telefono,
    v.metodo_entrega,
    v.metodo_pago,
    v.direccion_entrega,
    v.subtotal,
    v.total,
    v.estado,
    COUNT(d.id_detalle) AS cantidad_items,
    COALESCE(SUM(d.cantidad), 0) AS unidades
FROM ventas v
JOIN clientes c ON c.id_cliente = v.id_cliente
LEFT JOIN detalle_ventas d ON d.id_venta = v.id_venta
GROUP BY v.id_venta;
"""


class StoreError(Exception):
    """Connection or statement failure in the backing database."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


def now_local() -> str:
    return datetime.now().replace(microsecond=0).strftime('%Y-%m-%d %H:%M:%S')


class Store:
    """Pooled sqlite3 client.

    At most `pool_size` connections are opened. A caller that finds the pool
    empty waits up to `timeout` seconds for one to come back, then gets a
    StoreError. The same timeout is used as sqlite's busy timeout, so a
    writer waiting on another writer's lock gives up after that long too.
    """

    def __init__(self, db_path: Path | str, pool_size: int = 5, timeout: float = 5.0):
        if pool_size < 1:
            raise ValueError("pool_size must be >= 1")
        self.db_path = str(db_path)
        if self.db_path == ':memory:':
            # every sqlite3 connection to :memory: is its own database
            pool_size = 1
        else:
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self.pool_size = pool_size
        self.timeout = timeout
        self._idle = queue.LifoQueue(maxsize=pool_size)
        self._opened = 0
        self._lock = threading.Lock()
        self._closed = False

    @classmethod
    def from_config(cls, config) -> "Store":
        return cls(config.db_path, pool_size=config.pool_size, timeout=config.db_timeout)

    def _open(self) -> sqlite3.Connection:
        # isolation_level=None: no implicit BEGIN, transactions are explicit
        conn = sqlite3.connect(self.db_path, timeout=self.timeout, isolation_level=None, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        _logger.debug(f"Opened connection {self._opened}/{self.pool_size} to {self.db_path}")
        return conn

    def _acquire(self) -> sqlite3.Connection:
        if self._closed:
            raise StoreError("store is closed")
        try:
            return self._idle.get_nowait()
        except queue.Empty:
            pass
        with self._lock:
            if self._opened < self.pool_size:
                self._opened += 1
                try:
                    return self._open()
                except sqlite3.Error as e:
                    self._opened -= 1
                    raise StoreError(f"cannot open database {self.db_path}: {e}") from e
        try:
            return self._idle.get(timeout=self.timeout)
        except queue.Empty:
            raise StoreError(f"no database connection available after {self.timeout}s") from None

    def _release(self, conn: sqlite3.Connection) -> None:
        if conn.in_transaction:
            conn.rollback()
        if self._closed:
            conn.close()
            return
        self._idle.put_nowait(conn)

    @contextmanager
    def connection(self):
        """Borrow a pooled connection; it goes back to the pool on exit."""
        conn = self._acquire()
        try:
            yield conn
        except sqlite3.Error as e:
            raise StoreError(str(e)) from e
        finally:
            self._release(conn)

    @contextmanager
    def transaction(self):
        """Run the block as one write transaction.

        BEGIN IMMEDIATE takes the database write lock up front, so two
        registrations cannot both decide the same phone number is new.
        Commits on normal exit, rolls back on any exception.
        """
        with self.connection() as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
                conn.execute("COMMIT")
            except BaseException:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                raise

    def close(self) -> None:
        self._closed = True
        while True:
            try:
                conn = self._idle.get_nowait()
            except queue.Empty:
                break
            conn.close()


def init_db(store: Store, seed: bool = True) -> None:
    """Create tables and the sales view; add the default menu if `seed` and missing."""
    with store.connection() as conn:
        conn.executescript(SCHEMA)
    if seed:
        added = 0
        with store.transaction() as conn:
            for nombre, categoria, precio in DEFAULT_PRODUCTS:
                cur = conn.execute("SELECT id_producto FROM productos WHERE nombre = ?", (nombre,))
                if cur.fetchone() is None:
                    conn.execute("INSERT INTO productos (nombre, categoria, precio) VALUES (?, ?, ?)", (nombre, categoria, float(precio)))
                    added += 1
        if added:
            _logger.info(f"Seeded {added} default products")


def add_product(store: Store, nombre: str, precio: float, categoria: str = 'General', activo: bool = True) -> dict:
    with store.transaction() as conn:
        cur = conn.execute(
            "INSERT INTO productos (nombre, categoria, precio, activo) VALUES (?, ?, ?, ?)",
            (nombre, categoria, float(precio), 1 if activo else 0),
        )
        pid = cur.lastrowid
        row = conn.execute("SELECT id_producto, nombre, categoria, precio, activo FROM productos WHERE id_producto = ?", (pid,)).fetchone()
    return dict(row)


def set_product_active(store: Store, nombre: str, activo: bool) -> bool:
    with store.transaction() as conn:
        cur = conn.execute("UPDATE productos SET activo = ? WHERE nombre = ?", (1 if activo else 0, nombre))
        return bool(cur.rowcount)

