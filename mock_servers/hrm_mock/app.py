"""HRM Mock Server.

FastAPI application serving the HR management front-end during local
development: authentication, settings, employees, contracts, absences,
advances and loans, expense reports, job postings, work accidents and a
generic CRUD fallback over every collection of the JSON document.

Start with:
    python -m mock_servers.hrm_mock
or:
    uvicorn mock_servers.hrm_mock.app:app --port 3001
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from hrm_core.config import HRMSettings, get_settings
from mock_servers.hrm_mock.db import DocumentStore
from mock_servers.hrm_mock.errors import register_error_handlers
from mock_servers.hrm_mock.routes.absences import router as absences_router
from mock_servers.hrm_mock.routes.accidents import router as accidents_router
from mock_servers.hrm_mock.routes.auth import router as auth_router
from mock_servers.hrm_mock.routes.avances import router as avances_router
from mock_servers.hrm_mock.routes.avenants import router as avenants_router
from mock_servers.hrm_mock.routes.canaux import router as canaux_router
from mock_servers.hrm_mock.routes.competences import router as competences_router
from mock_servers.hrm_mock.routes.conges import router as conges_router
from mock_servers.hrm_mock.routes.contracts import router as contracts_router
from mock_servers.hrm_mock.routes.departments import router as departments_router
from mock_servers.hrm_mock.routes.employees import router as employees_router
from mock_servers.hrm_mock.routes.frais import router as frais_router
from mock_servers.hrm_mock.routes.generic import router as generic_router
from mock_servers.hrm_mock.routes.offres import router as offres_router
from mock_servers.hrm_mock.routes.parametres import router as parametres_router
from mock_servers.hrm_mock.routes.prets import router as prets_router
from mock_servers.hrm_mock.routes.settings import router as settings_router
from mock_servers.hrm_mock.routes.sieges import router as sieges_router

logger = logging.getLogger(__name__)

ENDPOINTS = [
    "/login",
    "/refresh",
    "/me",
    "/settings/competences",
    "/settings/{resource}",
    "/parametre-max-general",
    "/hrEmployees",
    "/movement-types",
    "/contracts",
    "/avenants",
    "/conge-compteurs",
    "/sieges",
    "/groups",
    "/departments/simple-list",
    "/canaux/getAll",
    "/absence-types",
    "/absences",
    "/avances",
    "/prets",
    "/api/admin/frais",
    "/offres/getAll",
    "/accidents-travail",
    "/{collection}",
]

# Order matters: the generic router matches any path, so it goes last.
_ROUTERS = [
    auth_router,
    competences_router,
    settings_router,
    parametres_router,
    employees_router,
    contracts_router,
    avenants_router,
    conges_router,
    sieges_router,
    departments_router,
    canaux_router,
    absences_router,
    avances_router,
    prets_router,
    frais_router,
    offres_router,
    accidents_router,
]


def load_store(settings: HRMSettings) -> DocumentStore:
    if settings.data_file is not None:
        return DocumentStore.from_file(settings.data_file)
    logger.info("No data file configured, serving the seed document from memory")
    return DocumentStore.from_seed()


def create_app(
    store: Optional[DocumentStore] = None,
    settings: Optional[HRMSettings] = None,
) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level_value,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title="HRM Mock API",
        description="Mock HR management backend for front-end development",
        version="1.0.0-mock",
    )
    app.state.settings = settings
    app.state.store = store if store is not None else load_store(settings)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)

    @app.get("/")
    async def root(request: Request):
        return {
            "type": "mock",
            "name": "HRM Mock API",
            "collections": request.app.state.store.collection_names(),
            "endpoints": ENDPOINTS,
        }

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    # Routes
    for router in _ROUTERS:
        app.include_router(router)
    app.include_router(generic_router)

    return app


app = create_app()
