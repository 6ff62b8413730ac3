# Copyright (c) 2025 Alexandre Tavares
# Licensed under the Creative Commons Attribution-NonCommercial 4.0 International (CC BY-NC 4.0)
# See the LICENSE file in the project root for more information.
import os
from dataclasses import dataclass
from dotenv import load_dotenv

"""
Central de configurações (Settings) do Backoffice.


- Carrega variáveis do .env (app/db/log/cors/auth/gateways de pagamento).
- Fornece defaults seguros e tipados via dataclass.
- Expõe `settings` como singleton para uso em toda a app.
"""

load_dotenv()

@dataclass
class Settings:
    APP_NAME: str = os.getenv("APP_NAME", "Backoffice")
    APP_ENV: str = os.getenv("APP_ENV", "local")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    HOST: str = os.getenv("HOST", "127.0.0.1")
    PORT: int = int(os.getenv("PORT", "8000"))
    API_PREFIX: str = os.getenv("API_PREFIX", "/api")

    # banco principal (dados dos tenants) e banco de vendas (metas/relatórios/nfe)
    DATABASE_URL: str = os.getenv("DATABASE_URL", "")
    DATABASE_URL_VENDEDORES: str = os.getenv("DATABASE_URL_VENDEDORES", "") or os.getenv("DATABASE_URL", "")
    DB_POOL_SIZE: int = int(os.getenv("DB_POOL_SIZE", "5"))
    DB_MAX_OVERFLOW: int = int(os.getenv("DB_MAX_OVERFLOW", "5"))
    DB_POOL_TIMEOUT: int = int(os.getenv("DB_POOL_TIMEOUT", "30"))

    CORS_ORIGINS: tuple[str, ...] = tuple(
        origin.strip() for origin in os.getenv("CORS_ORIGINS", "").split(",") if origin.strip()
    )

    # header preenchido pela camada de autenticação (proxy/gateway)
    AUTH_EMAIL_HEADER: str = os.getenv("AUTH_EMAIL_HEADER", "X-User-Email")

    HTTP_TIMEOUT_S: int = int(os.getenv("HTTP_TIMEOUT_S", "15"))

    PAGSEGURO_TOKEN: str = os.getenv("PAGSEGURO_TOKEN", "")
    PAGSEGURO_ENV: str = os.getenv("PAGSEGURO_ENV", "sandbox")
    PAGSEGURO_MAX_ATTEMPTS: int = int(os.getenv("PAGSEGURO_MAX_ATTEMPTS", "3"))
    PAGSEGURO_RETRY_BACKOFF_MS: int = int(os.getenv("PAGSEGURO_RETRY_BACKOFF_MS", "600"))
    PAGSEGURO_NOTIFICATION_URL: str = os.getenv("PAGSEGURO_NOTIFICATION_URL", "")
    PS_PIX_EXPIRES_IN: int = int(os.getenv("PS_PIX_EXPIRES_IN", "1800"))
    BOLETO_DUE_DAYS: int = int(os.getenv("BOLETO_DUE_DAYS", "3"))

    MP_ACCESS_TOKEN: str = os.getenv("MP_ACCESS_TOKEN", "")
    MP_WEBHOOK_URL: str = os.getenv("MP_WEBHOOK_URL", "")
    PUBLIC_BASE_URL: str = os.getenv("PUBLIC_BASE_URL", "")

    N8N_WEBHOOK_URL: str = os.getenv("N8N_WEBHOOK_URL", "")

settings = Settings()
