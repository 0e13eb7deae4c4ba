import os
import re
from datetime import date, datetime, timedelta

import pytest

from tomesvet import db
from tomesvet.historia import adjuntos
from tomesvet.historia.adjuntos import (
    AdjuntoFaltante,
    AdjuntoLegado,
    AlmacenamientoFallido,
    CodificacionInvalida,
    ExtensionInvalida,
    HistoriaNoEncontrada,
    PdfAdjunto,
    adjuntar_documento,
    adjuntos_de_historia,
    guardar_pdf,
    listar_documentos,
    validar_adjunto,
)
from tomesvet.historia.models import DocumentoHistoria, HistoriaClinica
from tomesvet.historia.services import crear_historia

from conftest import PDF_BYTES, PDF_DATA_URL

RUTA_RE = re.compile(r"^/uploads/historia-clinica/\d+-[0-9a-f]{12}\.pdf$")


def _historia(mascota_id: int) -> HistoriaClinica:
    historia = crear_historia(mascota_id=mascota_id, fecha=date(2024, 5, 1), motivo="Control")
    db.session.commit()
    return historia


def test_adjunto_valido_guarda_archivo_y_fila(app, mascota, upload_dir):
    with app.app_context():
        historia = crear_historia(
            mascota_id=mascota,
            fecha=date(2024, 5, 1),
            motivo="Análisis",
            adjunto=PdfAdjunto("analisis.pdf", PDF_DATA_URL),
        )
        db.session.commit()

        docs = DocumentoHistoria.query.filter_by(historia_id=historia.id).all()
        assert len(docs) == 1
        doc = docs[0]
        assert doc.nombre_original == "analisis.pdf"
        assert RUTA_RE.match(doc.ruta)
        stored = os.path.join(upload_dir, doc.ruta.rsplit("/", 1)[1])
        with open(stored, "rb") as fh:
            assert fh.read() == PDF_BYTES


def test_extension_invalida_no_escribe_nada(app, mascota, upload_dir):
    with app.app_context():
        historia = _historia(mascota)
        with pytest.raises(ExtensionInvalida):
            adjuntar_documento(historia.id, PdfAdjunto("analisis.png", PDF_DATA_URL))
        db.session.rollback()
        assert os.listdir(upload_dir) == []
        assert DocumentoHistoria.query.count() == 0


def test_extension_pdf_no_distingue_mayusculas(app, mascota):
    with app.app_context():
        historia = _historia(mascota)
        doc = adjuntar_documento(historia.id, PdfAdjunto("RADIOGRAFIA.PDF", PDF_DATA_URL))
        db.session.commit()
        assert doc is not None and doc.nombre_original == "RADIOGRAFIA.PDF"


def test_sin_prefijo_data_url_es_rechazado(app, mascota, upload_dir):
    sin_prefijo = PDF_DATA_URL.split(",", 1)[1]
    with app.app_context():
        historia = _historia(mascota)
        with pytest.raises(CodificacionInvalida):
            adjuntar_documento(historia.id, PdfAdjunto("analisis.pdf", sin_prefijo))
        assert os.listdir(upload_dir) == []


@pytest.mark.parametrize(
    "payload",
    [
        "data:image/png;base64,iVBORw0KGgo=",
        "data:application/pdf;base64,@@no-es-base64@@",
        "data:application/pdf;base64,",
    ],
)
def test_payload_invalido(app, payload):
    with app.app_context():
        with pytest.raises(CodificacionInvalida):
            validar_adjunto(PdfAdjunto("analisis.pdf", payload), obligatorio=True)


def test_adjunto_faltante_segun_endpoint(app):
    with app.app_context():
        vacio = PdfAdjunto("", "")
        assert validar_adjunto(vacio, obligatorio=False) is None
        assert validar_adjunto(None, obligatorio=False) is None
        with pytest.raises(AdjuntoFaltante):
            validar_adjunto(vacio, obligatorio=True)


def test_nombre_vacio_usa_rotulo_generico(app, mascota):
    with app.app_context():
        historia = _historia(mascota)
        doc = adjuntar_documento(historia.id, PdfAdjunto("", PDF_DATA_URL))
        db.session.commit()
        assert doc.nombre_original == "documento.pdf"


def test_historia_inexistente(app):
    with app.app_context():
        with pytest.raises(HistoriaNoEncontrada):
            adjuntar_documento(9999, PdfAdjunto("analisis.pdf", PDF_DATA_URL))


def test_fallo_de_almacenamiento_no_inserta_fila(app, mascota, instance_dir):
    # Un archivo común en lugar del directorio hace fallar la escritura
    bloqueado = os.path.join(instance_dir, "no-es-directorio")
    with open(bloqueado, "w") as fh:
        fh.write("x")
    app.config["UPLOAD_FOLDER"] = os.path.join(bloqueado, "sub")
    with app.app_context():
        historia = _historia(mascota)
        with pytest.raises(AlmacenamientoFallido) as excinfo:
            adjuntar_documento(historia.id, PdfAdjunto("analisis.pdf", PDF_DATA_URL))
        assert excinfo.value.status_code == 500
        db.session.rollback()
        assert DocumentoHistoria.query.count() == 0


def test_listado_mas_reciente_primero(app, mascota):
    with app.app_context():
        historia = _historia(mascota)
        base = datetime(2024, 1, 1, 12, 0, 0)
        for i, nombre in enumerate(["a.pdf", "b.pdf", "c.pdf"]):
            doc = adjuntar_documento(historia.id, PdfAdjunto(nombre, PDF_DATA_URL))
            doc.creado_en = base + timedelta(minutes=i)
        # Mismo instante que c.pdf: desempata el id más alto
        empate = adjuntar_documento(historia.id, PdfAdjunto("d.pdf", PDF_DATA_URL))
        empate.creado_en = base + timedelta(minutes=2)
        db.session.commit()

        nombres = [d.nombre_original for d in listar_documentos(historia.id)]
        assert nombres == ["d.pdf", "c.pdf", "b.pdf", "a.pdf"]
        assert listar_documentos(historia.id + 1) == []


def test_borrar_historia_borra_documentos_en_cascada(app, mascota):
    with app.app_context():
        historia = _historia(mascota)
        for nombre in ("a.pdf", "b.pdf"):
            adjuntar_documento(historia.id, PdfAdjunto(nombre, PDF_DATA_URL))
        db.session.commit()
        assert DocumentoHistoria.query.count() == 2

        db.session.delete(historia)
        db.session.commit()
        db.session.expire_all()
        assert DocumentoHistoria.query.count() == 0


def test_adjunto_legado_se_muestra_hasta_ser_reflejado(app, mascota):
    with app.app_context():
        historia = _historia(mascota)
        historia.archivo_nombre = "viejo.pdf"
        historia.archivo_path = "/uploads/historia-clinica/viejo.pdf"
        db.session.commit()

        lista = adjuntos_de_historia(historia)
        assert lista == [AdjuntoLegado("viejo.pdf", "/uploads/historia-clinica/viejo.pdf")]

        reflejo = DocumentoHistoria()
        reflejo.historia_id = historia.id
        reflejo.nombre_original = "viejo.pdf"
        reflejo.ruta = historia.archivo_path
        db.session.add(reflejo)
        db.session.commit()
        lista = adjuntos_de_historia(historia)
        assert len(lista) == 1 and isinstance(lista[0], DocumentoHistoria)


def test_colision_de_nombre_no_borra_el_archivo_existente(app, monkeypatch, upload_dir):
    monkeypatch.setattr(adjuntos, "generar_nombre", lambda: "fijo.pdf")
    with app.app_context():
        ruta = guardar_pdf(PDF_BYTES)
        with pytest.raises(AlmacenamientoFallido):
            guardar_pdf(b"%PDF-otro")
    existente = os.path.join(upload_dir, "fijo.pdf")
    assert ruta == "/uploads/historia-clinica/fijo.pdf"
    with open(existente, "rb") as fh:
        assert fh.read() == PDF_BYTES


def test_colision_de_nombre_genera_otro(app, monkeypatch, upload_dir):
    nombres = iter(["fijo.pdf", "fijo.pdf", "libre.pdf"])
    monkeypatch.setattr(adjuntos, "generar_nombre", lambda: next(nombres))
    with app.app_context():
        primera = guardar_pdf(PDF_BYTES)
        segunda = guardar_pdf(b"%PDF-otro")
    assert primera.endswith("/fijo.pdf") and segunda.endswith("/libre.pdf")
    assert sorted(os.listdir(upload_dir)) == ["fijo.pdf", "libre.pdf"]


def test_historia_inexistente_antes_que_adjunto_faltante(app):
    with app.app_context():
        with pytest.raises(HistoriaNoEncontrada) as excinfo:
            adjuntar_documento(9999, PdfAdjunto("", ""), obligatorio=True)
        assert excinfo.value.status_code == 404
