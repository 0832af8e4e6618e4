"""Flask API + static file server for the Papas Locas website.

Run:
  pip install -e .
  python app.py

The app serves static files from `web/` and exposes the JSON API under `/api/`.
Settings come from PAPAS_* environment variables (see config.py).
"""
from datetime import date

from flask import Blueprint, Flask, Response, current_app, jsonify, request

from config import Config
import db
import queries
import reservations
import sales
from logger import get_logger

VERSION = '1.0.0'
MAX_SALES_LIMIT = 200

_logger = get_logger(__name__)

api = Blueprint('api', __name__, url_prefix='/api')


def _store() -> db.Store:
    return current_app.extensions['store']


def _fail(mensaje: str, error: str | None = None, status: int = 500):
    body = {'success': False, 'mensaje': mensaje}
    if error is not None:
        body['error'] = error
    return jsonify(body), status


@api.after_request
def _cors(response):
    response.headers['Access-Control-Allow-Origin'] = '*'
    response.headers['Access-Control-Allow-Headers'] = 'Content-Type'
    response.headers['Access-Control-Allow-Methods'] = 'GET, POST, OPTIONS'
    return response


@api.route('')
@api.route('/')
def api_index():
    return jsonify({'mensaje': 'API de Papas Locas funcionando correctamente', 'version': VERSION})


@api.route('/productos')
def api_products():
    try:
        return jsonify({'success': True, 'data': queries.list_products(_store())})
    except db.StoreError as e:
        _logger.error(f"Error obteniendo productos: {e.message}")
        return _fail('Error al obtener productos', e.message)


@api.route('/productos/buscar/<path:nombre>')
def api_product_by_name(nombre):
    try:
        producto = queries.get_product_by_name(_store(), nombre)
    except db.StoreError as e:
        _logger.error(f"Error buscando producto {nombre!r}: {e.message}")
        return _fail('Error al buscar producto', e.message)
    if producto is None:
        return _fail('Producto no encontrado', status=404)
    return jsonify({'success': True, 'data': producto})


@api.route('/ventas/registrar', methods=['POST'])
def api_register_sale():
    data = request.get_json(silent=True)
    if data is None:
        return _fail('Faltan datos obligatorios', 'se esperaba un cuerpo JSON', 400)
    try:
        venta = sales.register_sale(_store(), data)
    except sales.ValidationError as e:
        return _fail(e.message, e.message, 400)
    except sales.ProductNotFoundError as e:
        return _fail('Error al registrar la venta', e.message, 400)
    except db.StoreError as e:
        return _fail('Error al registrar la venta', e.message)
    except Exception as e:
        _logger.exception(f"Unexpected error registering sale: {e}")
        return _fail('Error al registrar la venta', str(e))
    return jsonify({'success': True, 'mensaje': '¡Venta registrada exitosamente!', 'data': venta}), 201


@api.route('/ventas')
def api_sales():
    try:
        limite = int(request.args.get('limite', 50))
    except ValueError:
        return _fail('Parámetro limite inválido', status=400)
    limite = max(1, min(limite, MAX_SALES_LIMIT))
    try:
        return jsonify({'success': True, 'data': queries.list_recent_sales(_store(), limite)})
    except db.StoreError as e:
        _logger.error(f"Error obteniendo ventas: {e.message}")
        return _fail('Error al obtener ventas', e.message)


@api.route('/ventas/<int:id_venta>')
def api_sale_detail(id_venta):
    try:
        venta = queries.get_sale(_store(), id_venta)
    except db.StoreError as e:
        _logger.error(f"Error obteniendo venta {id_venta}: {e.message}")
        return _fail('Error al obtener detalle de venta', e.message)
    if venta is None:
        return _fail('Venta no encontrada', status=404)
    return jsonify({'success': True, 'data': venta})


@api.route('/estadisticas/hoy')
def api_today_stats():
    fecha = request.args.get('fecha')
    try:
        day = date.fromisoformat(fecha) if fecha else None
    except ValueError:
        return _fail('Parámetro fecha inválido (AAAA-MM-DD)', status=400)
    try:
        return jsonify({'success': True, 'data': queries.daily_stats(_store(), day)})
    except db.StoreError as e:
        _logger.error(f"Error obteniendo estadísticas: {e.message}")
        return _fail('Error al obtener estadísticas', e.message)


@api.route('/reservas', methods=['POST'])
def api_reservation():
    data = request.get_json(silent=True)
    if data is None:
        data = request.form.to_dict()
    try:
        reserva = reservations.validate_reservation(data)
    except reservations.ReservationError as e:
        return _fail(str(e), str(e), 400)
    code = reservations.generate_code()
    body = reservations.render_receipt(reserva, code)
    filename = reservations.receipt_filename(reserva, code)
    _logger.info(f"Reservation {code} for {reserva['personas']} on {reserva['fecha']}")
    resp = Response(body, mimetype='text/plain; charset=utf-8')
    resp.headers['Content-Disposition'] = f'attachment; filename="{filename}"'
    resp.headers['X-Reservation-Code'] = code
    return resp


def create_app(config: Config | None = None, store: db.Store | None = None) -> Flask:
    """Build the Flask app around `store` (one is created from `config` if omitted)."""
    config = config or Config.from_env()
    if store is None:
        store = db.Store.from_config(config)
    db.init_db(store, seed=config.seed)

    app = Flask(__name__, static_folder='web', static_url_path='')
    app.json.ensure_ascii = False
    app.extensions['store'] = store
    app.register_blueprint(api)

    @app.route('/')
    def index():
        return app.send_static_file('index.html')

    return app


if __name__ == '__main__':
    config = Config.from_env()
    app = create_app(config)
    _logger.info(f"Papas Locas server on http://{config.host}:{config.port}")
    try:
        app.run(host=config.host, port=config.port, debug=config.debug)
    finally:
        app.extensions['store'].close()
