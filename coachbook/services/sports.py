"""Sport types offered by tenants and their per-court limits."""

from enum import Enum


class SportType(str, Enum):
    GYM = "gym"
    RUNNING = "running"
    YOGA = "yoga"
    PILATES = "pilates"
    CROSSFIT = "crossfit"
    BOXING = "boxing"
    SWIMMING = "swimming"
    CYCLING = "cycling"
    TENNIS = "tennis"
    PADEL = "padel"
    SOCCER = "soccer"
    BASKETBALL = "basketball"
    FUNCTIONAL = "functional"
    PERSONAL_TRAINING = "personal_training"
    PHYSIOTHERAPY = "physiotherapy"
    NUTRITION = "nutrition"
    OTHER = "other"


PADEL_MAX_CLIENTS_PER_COURT = 4
DEFAULT_MAX_CLIENTS_PER_COURT = 6


def max_clients_per_court(sport_type: str) -> int:
    if sport_type == SportType.PADEL.value:
        return PADEL_MAX_CLIENTS_PER_COURT
    return DEFAULT_MAX_CLIENTS_PER_COURT
