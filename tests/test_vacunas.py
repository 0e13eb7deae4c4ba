from datetime import date

from tomesvet import db
from tomesvet.clientes.models import Cliente
from tomesvet.mascotas.models import Mascota
from tomesvet.vacunas.models import Vacuna
from tomesvet.vacunas.services import (
    actualizar_vacuna,
    limpiar_proximas_dosis,
    proximas_dosis,
    registrar_vacuna,
)


def _vacuna(mascota_id, proxima, *, tipo="Antirrábica", producto="Nobivac", aplicada=date(2024, 1, 10)):
    vacuna = registrar_vacuna(
        mascota_id=mascota_id,
        fecha_aplicacion=aplicada,
        tipo=tipo,
        producto=producto,
        proxima_dosis=proxima,
    )
    db.session.commit()
    return vacuna.id


def _proxima(vacuna_id):
    db.session.expire_all()
    return db.session.get(Vacuna, vacuna_id).proxima_dosis


def test_nueva_programacion_reemplaza_la_anterior(app, mascota):
    with app.app_context():
        a = _vacuna(mascota, date(2025, 1, 10))
        b = _vacuna(mascota, date(2025, 6, 10), aplicada=date(2024, 6, 10))
        assert _proxima(a) is None
        assert _proxima(b) == date(2025, 6, 10)


def test_otras_ternas_no_se_tocan(app, mascota):
    with app.app_context():
        otro_producto = _vacuna(mascota, date(2025, 2, 1), producto="Rabisin")
        otro_tipo = _vacuna(mascota, date(2025, 3, 1), tipo="Séxtuple")
        sin_producto = _vacuna(mascota, date(2025, 4, 1), producto=None)

        cliente = Cliente()
        cliente.nombre = "Beto Gómez"
        db.session.add(cliente)
        db.session.flush()
        otra = Mascota()
        otra.nombre = "Michi"
        otra.especie = "Gato"
        otra.cliente_id = cliente.id
        db.session.add(otra)
        db.session.commit()
        otra_mascota = _vacuna(otra.id, date(2025, 5, 1))

        _vacuna(mascota, date(2025, 9, 1))

        assert _proxima(otro_producto) == date(2025, 2, 1)
        assert _proxima(otro_tipo) == date(2025, 3, 1)
        assert _proxima(sin_producto) == date(2025, 4, 1)
        assert _proxima(otra_mascota) == date(2025, 5, 1)


def test_producto_nulo_forma_su_propia_terna(app, mascota):
    with app.app_context():
        a = _vacuna(mascota, date(2025, 1, 1), producto=None)
        con_producto = _vacuna(mascota, date(2025, 2, 1))
        b = _vacuna(mascota, date(2025, 3, 1), producto=None)
        assert _proxima(a) is None
        assert _proxima(con_producto) == date(2025, 2, 1)
        assert _proxima(b) == date(2025, 3, 1)


def test_alta_sin_proxima_dosis_no_limpia(app, mascota):
    with app.app_context():
        a = _vacuna(mascota, date(2025, 1, 1))
        _vacuna(mascota, None)
        assert _proxima(a) == date(2025, 1, 1)


def test_actualizar_quitando_fecha_no_afecta_a_otras(app, mascota):
    with app.app_context():
        otra = _vacuna(mascota, date(2025, 1, 1), producto="Rabisin")
        b = _vacuna(mascota, date(2025, 6, 1))
        vacuna = db.session.get(Vacuna, b)
        actualizar_vacuna(
            vacuna,
            fecha_aplicacion=vacuna.fecha_aplicacion,
            tipo=vacuna.tipo,
            producto=vacuna.producto,
            proxima_dosis=None,
        )
        db.session.commit()
        assert _proxima(b) is None
        assert _proxima(otra) == date(2025, 1, 1)


def test_actualizar_con_fecha_se_excluye_a_si_misma(app, mascota):
    with app.app_context():
        a = _vacuna(mascota, None)
        b = _vacuna(mascota, date(2025, 6, 1))
        vacuna = db.session.get(Vacuna, a)
        actualizar_vacuna(
            vacuna,
            fecha_aplicacion=vacuna.fecha_aplicacion,
            tipo=vacuna.tipo,
            producto=vacuna.producto,
            proxima_dosis=date(2025, 8, 1),
        )
        db.session.commit()
        assert _proxima(a) == date(2025, 8, 1)
        assert _proxima(b) is None


def test_limpiar_devuelve_cantidad(app, mascota):
    with app.app_context():
        _vacuna(mascota, date(2025, 1, 1))
        assert limpiar_proximas_dosis(mascota, "Nobivac", "Antirrábica") == 1
        assert limpiar_proximas_dosis(mascota, "Nobivac", "Antirrábica") == 0
        db.session.rollback()


def test_proximas_dosis_ordenadas(app, mascota):
    with app.app_context():
        _vacuna(mascota, date(2025, 9, 1), producto="A")
        _vacuna(mascota, date(2025, 3, 1), producto="B")
        _vacuna(mascota, date(2024, 1, 1), producto="C")
        fechas = [v.proxima_dosis for v in proximas_dosis(desde=date(2025, 1, 1))]
        assert fechas == [date(2025, 3, 1), date(2025, 9, 1)]
        assert len(proximas_dosis()) == 3


def test_alta_por_formulario_aplica_la_regla(app, client, mascota):
    datos = {
        "mascota_id": str(mascota),
        "fecha_aplicacion": "2024-01-10",
        "tipo": "Antirrábica",
        "producto": "Nobivac",
        "lote": "",
        "proxima_dosis": "2025-01-10",
        "observaciones": "",
    }
    resp = client.post("/vacunas/", data=datos)
    assert resp.status_code == 302
    datos.update(fecha_aplicacion="2025-01-10", proxima_dosis="2026-01-10")
    resp = client.post("/vacunas/", data=datos)
    assert resp.status_code == 302

    with app.app_context():
        filas = Vacuna.query.order_by(Vacuna.id).all()
        assert [v.proxima_dosis for v in filas] == [None, date(2026, 1, 10)]
        assert filas[0].lote is None

    resp = client.get("/vacunas/")
    assert resp.status_code == 200
    assert "Nobivac" in resp.get_data(as_text=True)
