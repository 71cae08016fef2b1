from __future__ import annotations

from dataclasses import asdict
from pathlib import Path
from typing import Any, NoReturn

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from shipping_rates.config import load_app_config
from shipping_rates.errors import SheetFetchError, ShippingConfigError, UnsupportedMethodError
from shipping_rates.log import setup_logging
from shipping_rates.models import CacheMeta, CountryConfig, PriceQuery, ShippingRule
from shipping_rates.service import ShippingRateService


APP_DIR = Path(__file__).resolve().parent
CONFIG_PATH = APP_DIR / "config.toml"


def _rule_payload(rule: ShippingRule) -> dict[str, Any]:
    return asdict(rule)


def _country_payload(config: CountryConfig) -> dict[str, Any]:
    payload = asdict(config)
    payload.pop("row_index", None)
    return payload


def _cache_payload(meta: CacheMeta) -> dict[str, Any]:
    return {
        "last_loaded_at": meta.last_loaded_at.isoformat() if meta.last_loaded_at else None,
        "ttl_ms": meta.ttl_ms,
        "expires_at": meta.expires_at.isoformat() if meta.expires_at else None,
        "total_rules": meta.total_rules,
        "total_country_configs": meta.total_country_configs,
    }


def _raise_load_error(e: Exception) -> NoReturn:
    if isinstance(e, ShippingConfigError):
        raise HTTPException(status_code=500, detail=f"Shipping configuration error: {e}") from e
    raise HTTPException(status_code=500, detail="Unable to load shipping configuration") from e


def get_service(request: Request) -> ShippingRateService:
    return request.app.state.shipping_service


def create_app(service: ShippingRateService | None = None) -> FastAPI:
    if service is None:
        config = load_app_config(CONFIG_PATH)
        setup_logging(config.log_level)
        service = ShippingRateService.from_config(config)

    app = FastAPI(title="Shipping Rates API", version="1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.shipping_service = service

    router = APIRouter(prefix="/api/v1")

    @router.get("/health")
    def health() -> dict[str, Any]:
        return {"ok": True}

    @router.get("/shipping/price")
    def get_price(
        country: str = Query(..., min_length=1),
        province: str = Query(...),
        district: str = Query(...),
        weight: float = Query(..., ge=0),
        method: str | None = None,
        service: ShippingRateService = Depends(get_service),
    ) -> dict[str, Any]:
        query = PriceQuery(country=country, province=province, district=district, weight=weight, method=method)
        try:
            match = service.get_price(query)
        except UnsupportedMethodError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e
        except (ShippingConfigError, SheetFetchError) as e:
            _raise_load_error(e)

        if match is None:
            raise HTTPException(status_code=404, detail="No shipping rule matched")

        rule = match.rule
        return {
            "currency": service.get_currency(),
            "price": match.price,
            "matched_rule": {
                "country": rule.country,
                "province": rule.province,
                "district": rule.district,
                "shipping_method": rule.shipping_method,
                "min_weight": rule.min_weight,
                "max_weight": rule.max_weight,
            },
        }

    @router.get("/shipping/config")
    def get_config(service: ShippingRateService = Depends(get_service)) -> dict[str, Any]:
        try:
            rules = service.get_all_rules()
        except (ShippingConfigError, SheetFetchError) as e:
            _raise_load_error(e)

        return {
            "cache": _cache_payload(service.get_cache_meta()),
            "currency": service.get_currency(),
            "default_method": service.get_default_method(),
            "supported_methods": service.get_supported_methods(),
            "total_rules": len(rules),
            "rules": [_rule_payload(r) for r in rules],
        }

    @router.get("/shipping/countries")
    def get_countries(service: ShippingRateService = Depends(get_service)) -> dict[str, Any]:
        try:
            countries = service.get_country_configs()
        except (ShippingConfigError, SheetFetchError) as e:
            _raise_load_error(e)

        return {"total": len(countries), "countries": [_country_payload(c) for c in countries]}

    @router.post("/shipping/config/reload", status_code=204)
    def reload_config(service: ShippingRateService = Depends(get_service)) -> Response:
        try:
            service.load_from_sheet()
        except (ShippingConfigError, SheetFetchError) as e:
            _raise_load_error(e)
        return Response(status_code=204)

    app.include_router(router)
    return app


app = create_app()
