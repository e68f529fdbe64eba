"""Time budget resolution for the campaign → workplace → job type → location tree.

Pure functions. Timers propagate bottom-up:
  1. if Locations are present, every JobType gets the sum of Location timers
  2. if JobTypes are present, every WorkplaceType gets the sum of JobType
     timers, otherwise the Location sum
  3. the campaign gets the sum of the nearest present level below it
A level counts as present when any member has a non-blank name or timer.
A campaign that ends up without a positive timer falls back to the default.
"""

import logging
import math
from collections.abc import Sequence

from autoapply.core.config import CampaignConfig, FacetConfig
from autoapply.core.schemas import EffectiveCampaignConfig, EffectiveFacet

logger = logging.getLogger(__name__)

DEFAULT_SEGMENT_MINUTES = 10.0


def parse_minutes(value: str) -> float:
    """Parse a timer string as minutes. Unparseable or non-positive values are 0."""
    try:
        minutes = float(value.strip())
    except (AttributeError, ValueError):
        return 0.0
    if not math.isfinite(minutes) or minutes < 0:
        return 0.0
    return minutes


def is_present(members: Sequence[FacetConfig]) -> bool:
    """A level is present when any member has a non-blank name or timer."""
    return any(m.name.strip() or m.timer_minutes.strip() for m in members)


def _own(members: Sequence[FacetConfig]) -> list[EffectiveFacet]:
    return [EffectiveFacet(name=m.name, timer_minutes=parse_minutes(m.timer_minutes)) for m in members]


def _total(members: Sequence[EffectiveFacet]) -> float:
    return sum(m.timer_minutes for m in members)


def _with_timer(members: Sequence[EffectiveFacet], minutes: float) -> list[EffectiveFacet]:
    return [m.model_copy(update={"timer_minutes": minutes}) for m in members]


def resolve_campaign(config: CampaignConfig) -> EffectiveCampaignConfig:
    """Return the campaign with every level's timer filled in bottom-up."""
    locations = _own(config.locations)
    job_types = _own(config.job_types)
    workplaces = _own(config.workplace_types)

    has_locations = is_present(config.locations)
    has_job_types = is_present(config.job_types)
    has_workplaces = is_present(config.workplace_types)

    location_sum = _total(locations)
    if has_locations:
        job_types = _with_timer(job_types, location_sum)

    if has_job_types:
        workplaces = _with_timer(workplaces, _total(job_types))
    elif has_locations:
        workplaces = _with_timer(workplaces, location_sum)

    if has_workplaces:
        campaign_minutes = _total(workplaces)
    elif has_job_types:
        campaign_minutes = _total(job_types)
    elif has_locations:
        campaign_minutes = location_sum
    else:
        campaign_minutes = parse_minutes(config.timer_minutes)

    if campaign_minutes <= 0:
        logger.debug(
            "Campaign '%s' has no usable timer, using %.0f minutes",
            config.title, DEFAULT_SEGMENT_MINUTES,
        )
        campaign_minutes = DEFAULT_SEGMENT_MINUTES

    return EffectiveCampaignConfig(
        title=config.title,
        timer_minutes=campaign_minutes,
        locations=locations,
        job_types=job_types,
        workplace_types=workplaces,
    )
