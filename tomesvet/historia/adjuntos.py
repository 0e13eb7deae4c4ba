"""Adjuntos PDF de la historia clínica.

Cada pedido de escritura trae como máximo un PDF codificado como data URL
(`data:application/pdf;base64,...`) junto al nombre original declarado por el
cliente. El flujo es siempre buscar historia -> validar -> escribir archivo ->
insertar fila; si algo falla antes de escribir no queda nada en disco y, si la
escritura del archivo falla, no se inserta ninguna fila que lo referencie.

Las filas se agregan a la sesión con flush, sin commit: el commit (o el
rollback) lo decide la ruta que llama, de modo que la historia y su primer
documento se guardan juntos.
"""

from __future__ import annotations

import base64
import binascii
import contextlib
import logging
import os
import secrets
import time
from dataclasses import dataclass
from typing import Mapping, Union

from flask import current_app

from .. import db
from .models import DocumentoHistoria, HistoriaClinica

PDF_DATA_URL_PREFIX = "data:application/pdf;base64,"
PDF_EXTENSION = ".pdf"
NOMBRE_POR_DEFECTO = "documento.pdf"
INTENTOS_NOMBRE = 5

logger = logging.getLogger("adjuntos")


class AdjuntoError(Exception):
    """Error de adjunto; `status_code` indica la respuesta HTTP equivalente."""

    status_code = 400


class AdjuntoFaltante(AdjuntoError):
    pass


class ExtensionInvalida(AdjuntoError):
    pass


class CodificacionInvalida(AdjuntoError):
    pass


class HistoriaNoEncontrada(AdjuntoError):
    status_code = 404


class AlmacenamientoFallido(AdjuntoError):
    status_code = 500


@dataclass(frozen=True)
class PdfAdjunto:
    nombre_original: str
    base64: str

    @classmethod
    def desde_form(cls, form: Mapping[str, str]) -> "PdfAdjunto":
        return cls(
            nombre_original=(form.get("archivo_nombre") or "").strip(),
            base64=(form.get("archivo_base64") or "").strip(),
        )

    @property
    def presente(self) -> bool:
        return bool(self.base64)


@dataclass(frozen=True)
class AdjuntoLegado:
    """Par (nombre, ruta) guardado directamente en historia_clinica."""

    nombre: str
    ruta: str


Adjunto = Union[AdjuntoLegado, DocumentoHistoria]


def validar_adjunto(adjunto: PdfAdjunto | None, *, obligatorio: bool) -> bytes | None:
    """Valida el adjunto y devuelve los bytes decodificados.

    Devuelve None cuando no hay adjunto y no es obligatorio. Un nombre vacío
    se acepta (se guarda con un rótulo genérico); uno no vacío debe terminar
    en .pdf.
    """
    if adjunto is None or not adjunto.presente:
        if obligatorio:
            raise AdjuntoFaltante("Debes adjuntar un archivo PDF.")
        return None
    nombre = adjunto.nombre_original
    if nombre and not nombre.lower().endswith(PDF_EXTENSION):
        raise ExtensionInvalida("El archivo debe tener extensión .pdf")
    if not adjunto.base64.startswith(PDF_DATA_URL_PREFIX):
        raise CodificacionInvalida("El archivo no es un PDF válido.")
    datos = "".join(adjunto.base64[len(PDF_DATA_URL_PREFIX) :].split())
    try:
        contenido = base64.b64decode(datos, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise CodificacionInvalida("No se pudo decodificar el PDF.") from exc
    if not contenido:
        raise CodificacionInvalida("El PDF está vacío.")
    return contenido


def generar_nombre() -> str:
    # Marca de tiempo en ms + sufijo aleatorio; la colisión es improbable, no imposible
    return f"{int(time.time() * 1000)}-{secrets.token_hex(6)}{PDF_EXTENSION}"


def ruta_publica(nombre: str) -> str:
    prefijo = current_app.config["UPLOAD_URL_PREFIX"].rstrip("/")
    return f"{prefijo}/{nombre}"


def guardar_pdf(contenido: bytes, directorio: str | None = None) -> str:
    """Escribe el PDF en la carpeta de adjuntos y devuelve su ruta pública.

    Nunca sobrescribe ni borra un archivo ajeno: si el nombre generado ya
    existe se genera otro, hasta INTENTOS_NOMBRE veces.
    """
    directorio = directorio or current_app.config["UPLOAD_FOLDER"]
    try:
        os.makedirs(directorio, exist_ok=True)
    except OSError as exc:
        logger.error("No se pudo crear %s: %s", directorio, exc)
        raise AlmacenamientoFallido("No se pudo guardar el archivo en el servidor.") from exc

    for _ in range(INTENTOS_NOMBRE):
        nombre = generar_nombre()
        destino = os.path.join(directorio, nombre)
        try:
            fh = open(destino, "xb")
        except FileExistsError:
            logger.warning("El nombre %s ya existe; se genera otro", nombre)
            continue
        except OSError as exc:
            logger.error("No se pudo escribir %s: %s", destino, exc)
            raise AlmacenamientoFallido("No se pudo guardar el archivo en el servidor.") from exc
        # Desde aquí el archivo es nuestro: ante un fallo se borra
        try:
            with fh:
                fh.write(contenido)
        except OSError as exc:
            with contextlib.suppress(OSError):
                os.remove(destino)
            logger.error("No se pudo escribir %s: %s", destino, exc)
            raise AlmacenamientoFallido("No se pudo guardar el archivo en el servidor.") from exc
        logger.info("PDF guardado en %s (%s bytes)", destino, len(contenido))
        return ruta_publica(nombre)

    logger.error("Sin nombre libre en %s tras %s intentos", directorio, INTENTOS_NOMBRE)
    raise AlmacenamientoFallido("No se pudo generar un nombre de archivo libre.")


def adjuntar_documento(
    historia_id: int,
    adjunto: PdfAdjunto | None,
    *,
    obligatorio: bool = True,
) -> DocumentoHistoria | None:
    """Valida, guarda y vincula un PDF a la historia indicada.

    La historia se busca antes de validar: un pedido a una historia
    inexistente responde 404 aunque el adjunto también sea inválido.
    Con `obligatorio=False` (alta de historia) la ausencia de adjunto
    devuelve None; con `obligatorio=True` (agregar documento) es un error.
    """
    historia = db.session.get(HistoriaClinica, historia_id)
    if historia is None:
        raise HistoriaNoEncontrada(f"La historia clínica {historia_id} no existe.")
    contenido = validar_adjunto(adjunto, obligatorio=obligatorio)
    if contenido is None or adjunto is None:
        return None
    ruta = guardar_pdf(contenido)
    documento = DocumentoHistoria()
    documento.historia_id = historia.id
    documento.nombre_original = adjunto.nombre_original or NOMBRE_POR_DEFECTO
    documento.ruta = ruta
    db.session.add(documento)
    db.session.flush()
    return documento


def listar_documentos(historia_id: int) -> list[DocumentoHistoria]:
    """Documentos de la historia, más recientes primero (empate por id)."""
    return (
        DocumentoHistoria.query.filter_by(historia_id=historia_id)
        .order_by(DocumentoHistoria.creado_en.desc(), DocumentoHistoria.id.desc())
        .all()
    )


def adjuntos_de_historia(historia: HistoriaClinica) -> list[Adjunto]:
    """Documentos normalizados más el adjunto legado si aún no fue reflejado."""
    adjuntos: list[Adjunto] = list(listar_documentos(historia.id))
    if historia.archivo_path and not any(d.ruta == historia.archivo_path for d in adjuntos):
        adjuntos.append(
            AdjuntoLegado(
                nombre=historia.archivo_nombre or NOMBRE_POR_DEFECTO,
                ruta=historia.archivo_path,
            )
        )
    return adjuntos
