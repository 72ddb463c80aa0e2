import httpx
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type
from cardbot.core.config import PROFILE_SERVICE_URL, REQUEST_TIMEOUT
from typing import Dict, Any, List, Optional, Tuple
import logging

logger = logging.getLogger(__name__)

# (имя поля, (имя файла или None, содержимое[, content-type]))
FilePart = Tuple[str, tuple]

class APIRequestError(Exception):
    """Базовый exception для API ошибок."""
    pass

class APIHTTPError(APIRequestError):
    """HTTP-ошибка от API."""
    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        super().__init__(message)

class APINetworkError(APIRequestError):
    """Сетевая ошибка (timeout, connection)."""
    pass

def retry_api_call():
    """Настройка retry для читающих API-запросов."""
    return retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        retry=retry_if_exception_type(APINetworkError),
        reraise=True
    )

def error_message(response: httpx.Response) -> str:
    """Текст ошибки из ответа сервиса: поле message или тело целиком."""
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return response.text or f"HTTP {response.status_code}"

def response_data(response: httpx.Response) -> Any:
    """Поле data из ответа сервиса. Тело не в JSON считается ошибкой API."""
    try:
        body = response.json()
    except ValueError:
        raise APIHTTPError(response.status_code, response.text or f"HTTP {response.status_code}")
    return body.get("data") if isinstance(body, dict) else None

def auth_headers(token: Optional[str]) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"} if token else {}

class AuthAPIClient:
    """Клиент авторизации."""
    def __init__(self, base_url: str = PROFILE_SERVICE_URL, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = f"{base_url.rstrip('/')}/api/auth"
        self.timeout = httpx.Timeout(REQUEST_TIMEOUT, connect=5.0)
        self.transport = transport

    async def login(self, email: str, password: str) -> Dict[str, Any]:
        """Вход по email и паролю. Возвращает {token, user}."""
        async with httpx.AsyncClient(
            http2=False, trust_env=False, timeout=self.timeout, transport=self.transport
        ) as client:
            try:
                response = await client.post(f"{self.base_url}/login", json={"email": email, "password": password})
                response.raise_for_status()
                data = response_data(response) or {}
                if not data.get("token"):
                    raise APIHTTPError(response.status_code, "Token missing in login response")
                logger.info(f"AuthAPI: user {email} logged in")
                return data
            except httpx.HTTPStatusError as e:
                raise APIHTTPError(e.response.status_code, error_message(e.response))
            except httpx.RequestError as e:
                raise APINetworkError(f"Network error: {str(e)}")

class ProfileAPIClient:
    """Клиент сервиса профилей."""
    def __init__(self, base_url: str = PROFILE_SERVICE_URL, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = f"{base_url.rstrip('/')}/api/profiles"
        self.timeout = httpx.Timeout(REQUEST_TIMEOUT, connect=5.0)
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(http2=False, trust_env=False, timeout=self.timeout, transport=self.transport)

    async def create_profile(
        self, parts: List[FilePart], token: Optional[str] = None
    ) -> Dict[str, Any]:
        """Создание профиля одной multipart-формой (profileData + файлы). Без повторов."""
        async with self._client() as client:
            try:
                response = await client.post(
                    self.base_url, files=parts, headers=auth_headers(token)
                )
                response.raise_for_status()
                logger.info(f"ProfileAPI: created profile, {len(parts)} multipart part(s)")
                return response_data(response) or {}
            except httpx.HTTPStatusError as e:
                raise APIHTTPError(e.response.status_code, error_message(e.response))
            except httpx.RequestError as e:
                raise APINetworkError(f"Network error: {str(e)}")

    @retry_api_call()
    async def get_profile(self, profile_id: str, token: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """Получение профиля по id."""
        async with self._client() as client:
            try:
                response = await client.get(f"{self.base_url}/{profile_id}", headers=auth_headers(token))
                response.raise_for_status()
                return response_data(response)
            except httpx.HTTPStatusError as e:
                if e.response.status_code == 404:
                    logger.info(f"ProfileAPI: profile {profile_id} not found.")
                    return None
                raise APIHTTPError(e.response.status_code, error_message(e.response))
            except httpx.RequestError as e:
                raise APINetworkError(f"Network error: {str(e)}")

    async def update_profile(
        self, profile_id: str, parts: List[FilePart], token: Optional[str] = None
    ) -> Dict[str, Any]:
        """Обновление профиля тем же multipart-форматом. Без повторов."""
        async with self._client() as client:
            try:
                response = await client.put(
                    f"{self.base_url}/{profile_id}", files=parts, headers=auth_headers(token)
                )
                response.raise_for_status()
                logger.info(f"ProfileAPI: updated profile {profile_id}")
                return response_data(response) or {}
            except httpx.HTTPStatusError as e:
                raise APIHTTPError(e.response.status_code, error_message(e.response))
            except httpx.RequestError as e:
                raise APINetworkError(f"Network error: {str(e)}")

    @retry_api_call()
    async def list_profiles(self, token: Optional[str] = None) -> List[Dict[str, Any]]:
        """Список профилей пользователя."""
        async with self._client() as client:
            try:
                response = await client.get(self.base_url, headers=auth_headers(token))
                response.raise_for_status()
                return response_data(response) or []
            except httpx.HTTPStatusError as e:
                raise APIHTTPError(e.response.status_code, error_message(e.response))
            except httpx.RequestError as e:
                raise APINetworkError(f"Network error: {str(e)}")

    async def delete_profile(self, profile_id: str, token: Optional[str] = None) -> bool:
        """Удаление профиля."""
        async with self._client() as client:
            try:
                response = await client.delete(f"{self.base_url}/{profile_id}", headers=auth_headers(token))
                response.raise_for_status()
                logger.info(f"ProfileAPI: deleted profile {profile_id}")
                return True
            except httpx.HTTPStatusError as e:
                raise APIHTTPError(e.response.status_code, error_message(e.response))
            except httpx.RequestError as e:
                raise APINetworkError(f"Network error: {str(e)}")

    async def toggle_profile_status(self, profile_id: str, token: Optional[str] = None) -> Dict[str, Any]:
        """Включение/выключение профиля."""
        async with self._client() as client:
            try:
                response = await client.patch(f"{self.base_url}/{profile_id}/toggle", headers=auth_headers(token))
                response.raise_for_status()
                logger.info(f"ProfileAPI: toggled profile {profile_id}")
                return response_data(response) or {}
            except httpx.HTTPStatusError as e:
                raise APIHTTPError(e.response.status_code, error_message(e.response))
            except httpx.RequestError as e:
                raise APINetworkError(f"Network error: {str(e)}")

auth_api_client = AuthAPIClient()
profile_api_client = ProfileAPIClient()
