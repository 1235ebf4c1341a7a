from typing import Any, Dict

from fastapi import APIRouter, Depends

from ..container import Container
from . import get_container

router = APIRouter()


@router.get("/healthz")
async def health_check(container: Container = Depends(get_container)) -> Dict[str, Any]:
    """Health check endpoint that verifies rate provider status"""

    provider_status = {
        container.fiat_provider.name: await container.fiat_provider.health_check(),
        container.crypto_provider.name: await container.crypto_provider.health_check(),
    }

    all_healthy = all(
        status["status"] in ["healthy", "unavailable"]
        for status in provider_status.values()
    )
    available_providers = sum(
        1 for status in provider_status.values()
        if status["status"] == "healthy"
    )

    return {
        # Fallback rates keep transfers quotable with no live provider
        "status": "healthy" if all_healthy and available_providers > 0 else "degraded",
        "providers": provider_status,
        "available_providers": available_providers,
        "total_providers": len(provider_status),
        "rate_cache": container.resolver.cache_stats(),
        "polling": container.poller.stats(),
    }
