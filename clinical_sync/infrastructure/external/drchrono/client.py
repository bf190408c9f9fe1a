"""
Cliente minimo de la API REST de DrChrono (sin SDKs externos).

Requisitos cubiertos:
- requests
- paginacion siguiendo el link 'next' de cada pagina
- rate-limit/backoff (429, 5xx)
- todo-o-nada: si una pagina falla no se devuelven resultados parciales
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Optional

import requests
from loguru import logger


class DrChronoApiError(RuntimeError):
    """Error de integracion con DrChrono."""


class DrChronoClient:
    """
    Cliente HTTP de DrChrono.

    Importante:
    - El access token se inyecta en el constructor; el cliente no lo refresca.
    - No hace cast de tipos de campos: eso se decide en los field mappers.
    """

    def __init__(
        self,
        access_token: str,
        *,
        session: Optional[requests.Session] = None,
        base_url: str = "https://app.drchrono.com/api",
        page_size: int = 100,
        max_pages: int = 100,
        page_delay_s: float = 0.2,
        timeout_s: int = 30,
        max_retries: int = 6,
        min_backoff_s: float = 0.8,
        max_backoff_s: float = 20.0,
    ) -> None:
        self._token = access_token
        self._base_url = base_url.rstrip("/")
        self._page_size = page_size
        self._max_pages = max_pages
        self._page_delay_s = page_delay_s
        self._timeout_s = timeout_s
        self._max_retries = max_retries
        self._min_backoff_s = min_backoff_s
        self._max_backoff_s = max_backoff_s
        self._session = session or requests.Session()

    async def fetch_all(self, endpoint: str, params: Optional[dict[str, Any]] = None) -> list[dict[str, Any]]:
        """
        Trae la coleccion completa de un endpoint, en el orden del listado.

        Raises:
            DrChronoApiError: si cualquier pagina falla
        """
        return await asyncio.to_thread(self.iter_pages_sync, endpoint, dict(params or {}))

    def iter_pages_sync(self, endpoint: str, params: dict[str, Any]) -> list[dict[str, Any]]:
        """Recorre todas las paginas de forma bloqueante (se usa desde un thread)."""
        url: Optional[str] = f"{self._base_url}/{endpoint.strip('/')}"
        query: Optional[dict[str, Any]] = {"page_size": self._page_size, **params}

        records: list[dict[str, Any]] = []
        pages = 0

        while url:
            if pages >= self._max_pages:
                logger.warning(
                    f"DrChrono {endpoint}: limite de {self._max_pages} paginas alcanzado, "
                    f"se corta con {len(records)} registros"
                )
                break

            if pages > 0 and self._page_delay_s > 0:
                time.sleep(self._page_delay_s)

            payload = self._request_json("GET", url, query=query)
            pages += 1

            # Algunos endpoints devuelven una lista plana sin paginar
            if isinstance(payload, list):
                records.extend(payload)
                break

            if not isinstance(payload, dict):
                raise DrChronoApiError(
                    f"DrChrono {endpoint}: respuesta inesperada ({type(payload).__name__})"
                )

            records.extend(payload.get("results") or [])

            # 'next' ya trae la query completa
            url = payload.get("next")
            query = None

        logger.debug(f"DrChrono {endpoint}: {len(records)} registros en {pages} paginas")
        return records

    def _request_json(
        self, method: str, url: str, *, query: Optional[dict[str, Any]]
    ) -> Any:
        """
        Request HTTP con backoff para 429/5xx.

        Estrategia:
        - 429: respeta Retry-After si existe, si no exponencial con jitter simple.
        - 5xx: exponencial con jitter.
        - 4xx (no 429): error inmediato (token/config mal).
        - error de red: se trata igual que un 5xx.
        """
        headers = {
            "Authorization": f"Bearer {self._token}",
            "Accept": "application/json",
        }

        for attempt in range(self._max_retries + 1):
            try:
                resp = self._session.request(
                    method=method,
                    url=url,
                    params=query,
                    headers=headers,
                    timeout=self._timeout_s,
                )
            except requests.RequestException as e:
                if attempt >= self._max_retries:
                    raise DrChronoApiError(
                        f"DrChrono sin respuesta tras {attempt} reintentos: {e}"
                    ) from e
                time.sleep(self._backoff_seconds(attempt))
                continue

            if 200 <= resp.status_code < 300:
                try:
                    return resp.json()
                except ValueError as e:
                    raise DrChronoApiError(f"DrChrono devolvio JSON invalido en {url}") from e

            # Errores recuperables
            if resp.status_code == 429 or 500 <= resp.status_code < 600:
                if attempt >= self._max_retries:
                    raise DrChronoApiError(
                        f"DrChrono error {resp.status_code} tras {attempt} reintentos: {resp.text}"
                    )

                retry_after = resp.headers.get("Retry-After")
                if retry_after:
                    try:
                        sleep_s = float(retry_after)
                    except ValueError:
                        sleep_s = self._min_backoff_s
                else:
                    sleep_s = self._backoff_seconds(attempt)

                logger.warning(
                    f"DrChrono {resp.status_code} en {url}, reintento {attempt + 1} en {sleep_s:.1f}s"
                )
                time.sleep(sleep_s)
                continue

            # Errores no recuperables
            raise DrChronoApiError(
                f"DrChrono request fallo {resp.status_code}: {resp.text}"
            )

        raise DrChronoApiError(f"DrChrono request agoto reintentos: {url}")

    def _backoff_seconds(self, attempt: int) -> float:
        # Exponencial simple + jitter proporcional
        base = min(self._max_backoff_s, self._min_backoff_s * (2**attempt))
        return base + (0.15 * base)


def build_drchrono_client(settings: Any, *, session: Optional[requests.Session] = None) -> DrChronoClient:
    """Crea el cliente a partir de la configuracion de la app."""
    if not settings.DRCHRONO_ACCESS_TOKEN:
        logger.warning("DRCHRONO_ACCESS_TOKEN vacio: las llamadas a DrChrono van a fallar con 401")

    return DrChronoClient(
        settings.DRCHRONO_ACCESS_TOKEN,
        session=session,
        base_url=settings.DRCHRONO_API_BASE,
        page_size=settings.DRCHRONO_PAGE_SIZE,
        max_pages=settings.DRCHRONO_MAX_PAGES,
        page_delay_s=settings.DRCHRONO_PAGE_DELAY_S,
        timeout_s=settings.DRCHRONO_TIMEOUT_S,
        max_retries=settings.DRCHRONO_MAX_RETRIES,
    )
