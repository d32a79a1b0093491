"""
Configuration for the Entity Fusion Engine.
"""

from src.shared.config import settings


# Correlation thresholds (one shared value for grouping and classification)
CORRELATION_THRESHOLD = settings.fusion_correlation_threshold
SAME_ENTITY_THRESHOLD = settings.fusion_same_entity_threshold

# Evidence parameters
EXACT_NAME_CONFIDENCE = settings.fusion_exact_name_confidence
FUZZY_MATCH_THRESHOLD = settings.fusion_fuzzy_match_threshold
TYPE_MATCH_BONUS = settings.fusion_type_match_bonus
GEO_PROXIMITY_METERS = settings.fusion_geo_proximity_meters
TEMPORAL_WINDOW_SECONDS = settings.fusion_temporal_window_seconds

# Fusion parameters
TEMPORAL_DECAY_RATE = settings.fusion_temporal_decay_rate  # Per day
FRESHNESS_HORIZON_DAYS = settings.fusion_freshness_horizon_days
DEFAULT_SOURCE_WEIGHT = 1.0

# Bayesian fusion clips probabilities away from 0 and 1
BAYESIAN_EPSILON = 1e-6

# Resource limits
MAX_BATCH_SIZE = settings.fusion_max_batch_size
PARALLEL_MIN_BATCH = settings.fusion_parallel_min_batch
SCORING_WORKERS = settings.fusion_scoring_workers
ENTITY_CACHE_SIZE = settings.fusion_entity_cache_size
CORRELATION_CACHE_SIZE = settings.fusion_correlation_cache_size

# Earth mean radius used by the haversine distance
EARTH_RADIUS_METERS = 6_371_008.8
