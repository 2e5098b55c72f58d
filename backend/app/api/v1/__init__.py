"""
API v1 Routes
Progetto: Energy Billing (Gestionale Contratti Energia)

Router versione 1 dell'API.
"""

from fastapi import APIRouter

from app.api.v1 import billing, contracts, indices, invoices

# Router aggregato per v1
api_v1_router = APIRouter(prefix="/api/v1")

# Includi i router dei moduli
api_v1_router.include_router(billing.router)
api_v1_router.include_router(invoices.router)
api_v1_router.include_router(invoices.credit_notes_router)
api_v1_router.include_router(indices.router)
api_v1_router.include_router(contracts.router)
api_v1_router.include_router(contracts.sites_router)
api_v1_router.include_router(contracts.activities_router)
api_v1_router.include_router(contracts.clients_router)

# Esportazione
__all__ = ["api_v1_router"]
