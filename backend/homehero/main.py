import os

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.trustedhost import TrustedHostMiddleware

from homehero.models import StoreStatus
from homehero.routers import auth, bookings, favorites, provider, services
from homehero.services.catalog_store import catalog_store
from homehero.services.errors import ServiceStoreUnavailableError

app = FastAPI(title="HomeHero API", version="0.1.0")


def _parse_csv_env(name: str, default: str) -> list[str]:
    raw = os.getenv(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


cors_origins = _parse_csv_env("CORS_ORIGINS", "*")
allow_any_origin = len(cors_origins) == 1 and cors_origins[0] == "*"

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    # Browsers reject wildcard CORS with credentials enabled.
    allow_credentials=not allow_any_origin,
    allow_methods=["*"],
    allow_headers=["*"],
)

trusted_hosts = _parse_csv_env("TRUSTED_HOSTS", "*")
if not (len(trusted_hosts) == 1 and trusted_hosts[0] == "*"):
    app.add_middleware(TrustedHostMiddleware, allowed_hosts=trusted_hosts)

app.include_router(services.router, prefix="/services")
app.include_router(services.public_router)
app.include_router(bookings.router)
app.include_router(favorites.router)
app.include_router(provider.router)
app.include_router(auth.router)


@app.get("/")
def root():
    return {"ok": True, "message": "HomeHero API is running"}


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/ready", response_model=StoreStatus)
def ready():
    try:
        return StoreStatus(services=catalog_store.count_services())
    except ServiceStoreUnavailableError as exc:
        raise HTTPException(status_code=503, detail=str(exc))
