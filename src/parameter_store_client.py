"""
AWS Systems Manager Parameter Store clients.

Two transports are supported:
- SSM API via boto3 (get_parameter with decryption)
- AWS Parameters and Secrets Lambda Extension over localhost HTTP

Both return the decrypted value, or None when the store answers successfully
without a value.
"""

import os
from typing import Optional

import boto3
import requests
from botocore.exceptions import BotoCoreError, ClientError

DEFAULT_EXTENSION_PORT = "2773"
_EXTENSION_TIMEOUT_SECONDS = 5


class ParameterStoreError(Exception):
    """Raised when a parameter cannot be retrieved from the store."""

    pass


class ParameterNotFoundError(ParameterStoreError):
    """Raised when the parameter does not exist."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"failed to get parameter - parameter {name} not found")


class ParameterStoreClient:
    """Interface for secret-parameter retrieval."""

    def get_with_decryption(self, name: str) -> Optional[str]:
        raise NotImplementedError


class SsmParameterStoreClient(ParameterStoreClient):
    """Parameter Store client backed by the boto3 SSM API."""

    def __init__(self, region: Optional[str] = None, client=None):
        self._region = region or os.environ.get("AWS_REGION_NAME", "ap-northeast-1")
        self._client = client

    def _get_client(self):
        if self._client is None:
            self._client = boto3.client("ssm", region_name=self._region)
        return self._client

    def get_with_decryption(self, name: str) -> Optional[str]:
        """
        Fetch and decrypt a parameter.

        Raises:
            ParameterNotFoundError: parameter does not exist
            ParameterStoreError: any other SSM or transport failure
        """
        try:
            response = self._get_client().get_parameter(Name=name, WithDecryption=True)
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "")
            if error_code == "ParameterNotFound":
                raise ParameterNotFoundError(name) from e
            raise ParameterStoreError(f"failed to get parameter - {error_code}: {e}") from e
        except BotoCoreError as e:
            raise ParameterStoreError(f"failed to get parameter - http request error: {e}") from e

        parameter = (response or {}).get("Parameter") or {}
        return parameter.get("Value") or None


class ExtensionParameterStoreClient(ParameterStoreClient):
    """
    Parameter Store client backed by the Parameters and Secrets Lambda Extension.

    The extension listens on localhost and authenticates callers with the
    function's session token.
    """

    def __init__(self, port: Optional[str] = None, http: Optional[requests.Session] = None):
        self._port = port
        self._http = http or requests.Session()

    @property
    def endpoint(self) -> str:
        port = self._port or os.environ.get("PARAMETERS_SECRETS_EXTENSION_HTTP_PORT", DEFAULT_EXTENSION_PORT)
        return f"http://localhost:{port}/systemsmanager/parameters/get"

    def get_with_decryption(self, name: str) -> Optional[str]:
        """
        Fetch and decrypt a parameter through the extension.

        Raises:
            ParameterStoreError: transport failure, non-2xx or malformed response
        """
        try:
            response = self._http.get(
                self.endpoint,
                params={"name": name, "withDecryption": "true"},
                headers={"X-Aws-Parameters-Secrets-Token": os.environ.get("AWS_SESSION_TOKEN", "")},
                timeout=_EXTENSION_TIMEOUT_SECONDS,
            )
            response.raise_for_status()
            payload = response.json()
        except requests.RequestException as e:
            raise ParameterStoreError(f"failed to get parameter - http request error: {e}") from e
        except ValueError as e:
            raise ParameterStoreError(f"failed to get parameter - invalid response: {e}") from e

        parameter = (payload or {}).get("Parameter") or {}
        return parameter.get("Value") or None


def create_parameter_store_client(backend: Optional[str] = None) -> ParameterStoreClient:
    """Return the client for PARAMETER_STORE_BACKEND ("ssm" or "extension")."""
    backend = (backend or os.environ.get("PARAMETER_STORE_BACKEND") or "ssm").strip().lower()
    if backend == "extension":
        return ExtensionParameterStoreClient()
    if backend == "ssm":
        return SsmParameterStoreClient()
    raise ValueError(f"unknown parameter store backend: {backend}")
