"""
FastAPI routers grouped by domain (auth, cards, contacts, nfc, admin, etc.).

Each module exposes an APIRouter that ``app.create_app`` includes, keeping the
endpoint definitions close to the service they call.
"""
