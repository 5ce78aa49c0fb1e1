import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests
from requests import Session

from .config import API_ENDPOINTS, config
from .exceptions import DataUnavailable
from .models import Product, Template

logger = logging.getLogger(__name__)


@dataclass
class ProductSuggestion:
    """Search hit: just enough to pick a SKU."""
    sku: str
    name: str


class ProductAPI:
    """Client for the POP backend: login, product lookup, search and templates.

    Lookups never raise for "not found" or transport problems; they log and
    return None or an empty list so the caller can fall back to the local
    catalog.
    """

    def __init__(self, base_url: Optional[str] = None, token: Optional[str] = None,
                 timeout: Optional[float] = None, session: Optional[Session] = None):
        self.base_url = (base_url or config.get("API_BASE_URL")).rstrip('/')
        self.timeout = timeout if timeout is not None else float(config.get("API_TIMEOUT_SECONDS"))
        self.session = session or Session()
        self.auth_token = None
        self.is_authenticated = False
        if token:
            self.set_token(token)

    def _url(self, endpoint: str, **params) -> str:
        path = API_ENDPOINTS[endpoint].format(**{k: quote(str(v), safe='') for k, v in params.items()})
        return f"{self.base_url}{path}"

    def set_token(self, token: str):
        """Use a bearer token for all subsequent requests."""
        self.auth_token = token
        self.is_authenticated = True
        self.session.headers.update({'Authorization': f'Bearer {token}'})

    def login(self, username: str, password: str) -> bool:
        """Exchange credentials for a bearer token."""
        try:
            response = self.session.post(
                self._url('login'),
                json={"username": username.strip(), "password": password.strip()},
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Login error: {str(e)}")
            return False

        if response.status_code != 200:
            logger.error(f"Authentication failed: {response.status_code} - {self._error_text(response)}")
            return False

        token = self._json(response, {}).get('token')
        if not token:
            logger.error("No token received in login response")
            return False

        self.set_token(token)
        logger.info(f"Authenticated with {self.base_url} as {username}")
        return True

    def logout(self):
        """Forget the token; the backend keeps no session to end."""
        self.auth_token = None
        self.is_authenticated = False
        self.session.headers.pop('Authorization', None)

    def fetch_product_by_sku(self, sku: str) -> Optional[Product]:
        """Look up one product; None when unknown or the backend is unreachable."""
        trimmed = (sku or "").strip()
        if not trimmed:
            return None

        data = self._get_json('product', sku=trimmed)
        if not isinstance(data, dict):
            return None

        product = Product.from_record(data)
        if not product.sku:
            product.sku = trimmed
        # Backend records are catalog records, whatever the payload claims
        product.is_custom = False
        logger.debug(f"Fetched product {product.sku}: {product.name}")
        return product

    def require_product(self, sku: str) -> Product:
        """Like fetch_product_by_sku, but raises DataUnavailable when nothing is found."""
        product = self.fetch_product_by_sku(sku)
        if product is None:
            raise DataUnavailable(f"Product {sku} not found", {'sku': sku})
        return product

    def search_products(self, query: str) -> List[ProductSuggestion]:
        """Search by SKU prefix or name fragment."""
        trimmed = (query or "").strip()
        if not trimmed:
            return []

        data = self._get_json('search', params={'search': trimmed})
        if not isinstance(data, list):
            return []
        return [
            ProductSuggestion(sku=str(item.get('pd_code', '')), name=str(item.get('pd_short_desc') or ''))
            for item in data if isinstance(item, dict)
        ]

    def list_templates(self) -> List[Template]:
        data = self._get_json('templates')
        if not isinstance(data, list):
            return []
        return [self._template(item) for item in data if isinstance(item, dict)]

    def get_template(self, template_id: str) -> Optional[Template]:
        data = self._get_json('template', template_id=template_id)
        if not isinstance(data, dict):
            return None
        return self._template(data)

    def fetch_brand_segments(self) -> List[str]:
        """Brand labels offered for ad hoc entries."""
        data = self._get_json('brand_segments')
        if not isinstance(data, list):
            return []
        segments = []
        for item in data:
            label = item.get('segment') or item.get('name') if isinstance(item, dict) else item
            if label and str(label).strip():
                segments.append(str(label).strip())
        return segments

    def _template(self, record: Dict[str, Any]) -> Template:
        template = Template.from_record(record)
        # Uploaded images are served relative to the backend
        if template.image_url and template.image_url.startswith('/'):
            template.image_url = f"{self.base_url}{template.image_url}"
        return template

    def _get_json(self, endpoint: str, params: Optional[Dict[str, str]] = None, **path_params) -> Any:
        url = self._url(endpoint, **path_params)
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.error(f"Request to {url} failed: {str(e)}")
            return None

        if response.status_code == 404:
            logger.warning(f"Not found: {url}")
            return None
        if not response.ok:
            logger.error(f"Request to {url} failed: {response.status_code} - {self._error_text(response)}")
            return None
        return self._json(response, None)

    @staticmethod
    def _json(response, default):
        try:
            return response.json()
        except ValueError:
            logger.error(f"Invalid JSON from {response.url}")
            return default

    @staticmethod
    def _error_text(response) -> str:
        try:
            payload = response.json()
        except ValueError:
            return response.text
        if isinstance(payload, dict) and payload.get('error'):
            return str(payload['error'])
        return response.text
