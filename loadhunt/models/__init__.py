from loadhunt.models.archived_match import ArchivedMatch
from loadhunt.models.hunt_plan import HuntPlan
from loadhunt.models.load_offer import LoadOffer
from loadhunt.models.match import HuntMatch
from loadhunt.models.match_action import MatchAction
from loadhunt.models.missed_load import MissedLoad
from loadhunt.models.vehicle_type_mapping import VehicleTypeMapping

__all__ = [
    "ArchivedMatch",
    "HuntMatch",
    "HuntPlan",
    "LoadOffer",
    "MatchAction",
    "MissedLoad",
    "VehicleTypeMapping",
]
