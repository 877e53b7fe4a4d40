from loadhunt.services.hunt_plan_service import create_plan, get_plan, list_plans
from loadhunt.services.offer_service import ingest_offer, list_offers

__all__ = ["create_plan", "get_plan", "list_plans", "ingest_offer", "list_offers"]
