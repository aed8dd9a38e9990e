import logging
from dataclasses import dataclass

from skyquality.filters import haversine_km
from skyquality.types import GeoCoordinate
from .base import LightPollutionProvider

logger = logging.getLogger(__name__)

NEIGHBOURS = 3
DIRECT_RADIUS_KM = 10.0
MAX_REACH_KM = 300.0
DEFAULT_BORTLE = 4.0


@dataclass(frozen=True)
class LightPollutionSite:
    name: str
    latitude_deg: float
    longitude_deg: float
    bortle: float
    kind: str

    @property
    def coordinate(self) -> GeoCoordinate:
        return GeoCoordinate(self.latitude_deg, self.longitude_deg)


SITES: tuple[LightPollutionSite, ...] = (
    # Asia
    LightPollutionSite("Tokyo", 35.6762, 139.6503, 9.0, "metropolis"),
    LightPollutionSite("Seoul", 37.5665, 126.9780, 9.0, "metropolis"),
    LightPollutionSite("Shanghai", 31.2304, 121.4737, 8.8, "metropolis"),
    LightPollutionSite("Beijing", 39.9042, 116.4074, 8.7, "metropolis"),
    LightPollutionSite("Hong Kong", 22.3193, 114.1694, 8.7, "metropolis"),
    LightPollutionSite("Delhi", 28.7041, 77.1025, 8.6, "metropolis"),
    LightPollutionSite("Mumbai", 19.0760, 72.8777, 8.4, "metropolis"),
    LightPollutionSite("Bangkok", 13.7563, 100.5018, 8.3, "metropolis"),
    LightPollutionSite("Singapore", 1.3521, 103.8198, 8.5, "metropolis"),
    LightPollutionSite("Jakarta", -6.2088, 106.8456, 8.3, "metropolis"),
    LightPollutionSite("Guangzhou", 23.1291, 113.2644, 8.2, "metropolis"),
    LightPollutionSite("Chengdu", 30.5723, 104.0665, 7.8, "large-city"),
    LightPollutionSite("Harbin", 45.8038, 126.5340, 7.2, "large-city"),
    LightPollutionSite("Lijiang", 26.8721, 100.2281, 5.1, "small-city"),
    # Europe
    LightPollutionSite("London", 51.5074, -0.1278, 8.3, "metropolis"),
    LightPollutionSite("Paris", 48.8566, 2.3522, 8.2, "metropolis"),
    LightPollutionSite("Madrid", 40.4168, -3.7038, 8.0, "metropolis"),
    LightPollutionSite("Berlin", 52.5200, 13.4050, 7.9, "large-city"),
    LightPollutionSite("Rome", 41.9028, 12.4964, 7.9, "large-city"),
    LightPollutionSite("Moscow", 55.7558, 37.6173, 8.4, "metropolis"),
    LightPollutionSite("Istanbul", 41.0082, 28.9784, 8.1, "metropolis"),
    LightPollutionSite("Stockholm", 59.3293, 18.0686, 7.5, "large-city"),
    LightPollutionSite("Vienna", 48.2082, 16.3738, 7.5, "large-city"),
    LightPollutionSite("Reykjavik", 64.1466, -21.9426, 6.8, "medium-city"),
    LightPollutionSite("Tromsø", 69.6492, 18.9553, 5.6, "small-city"),
    # North America
    LightPollutionSite("New York", 40.7128, -74.0060, 8.5, "metropolis"),
    LightPollutionSite("Los Angeles", 34.0522, -118.2437, 8.4, "metropolis"),
    LightPollutionSite("Chicago", 41.8781, -87.6298, 8.2, "metropolis"),
    LightPollutionSite("Toronto", 43.6532, -79.3832, 8.0, "metropolis"),
    LightPollutionSite("Mexico City", 19.4326, -99.1332, 8.5, "metropolis"),
    LightPollutionSite("Houston", 29.7604, -95.3698, 7.9, "large-city"),
    LightPollutionSite("San Francisco", 37.7749, -122.4194, 7.7, "large-city"),
    LightPollutionSite("Seattle", 47.6062, -122.3321, 7.5, "large-city"),
    LightPollutionSite("Denver", 39.7392, -104.9903, 7.3, "large-city"),
    LightPollutionSite("Phoenix", 33.4484, -112.0740, 7.4, "large-city"),
    LightPollutionSite("Fairbanks", 64.8378, -147.7164, 5.9, "small-city"),
    # South America
    LightPollutionSite("São Paulo", -23.5505, -46.6333, 8.3, "metropolis"),
    LightPollutionSite("Buenos Aires", -34.6037, -58.3816, 8.1, "metropolis"),
    LightPollutionSite("Lima", -12.0464, -77.0428, 7.8, "large-city"),
    LightPollutionSite("Santiago", -33.4489, -70.6693, 7.6, "large-city"),
    # Oceania
    LightPollutionSite("Sydney", -33.8688, 151.2093, 7.7, "large-city"),
    LightPollutionSite("Melbourne", -37.8136, 144.9631, 7.6, "large-city"),
    LightPollutionSite("Perth", -31.9505, 115.8605, 7.2, "large-city"),
    LightPollutionSite("Auckland", -36.8509, 174.7645, 7.1, "large-city"),
    LightPollutionSite("Alice Springs", -23.6980, 133.8807, 5.5, "small-city"),
    # Africa and the Middle East
    LightPollutionSite("Cairo", 30.0444, 31.2357, 8.3, "metropolis"),
    LightPollutionSite("Lagos", 6.5244, 3.3792, 8.1, "metropolis"),
    LightPollutionSite("Johannesburg", -26.2041, 28.0473, 7.7, "large-city"),
    LightPollutionSite("Nairobi", -1.2921, 36.8219, 7.3, "large-city"),
    LightPollutionSite("Cape Town", -33.9249, 18.4241, 7.2, "large-city"),
    LightPollutionSite("Dubai", 25.2048, 55.2708, 8.3, "metropolis"),
    LightPollutionSite("Tehran", 35.6892, 51.3890, 7.9, "metropolis"),
    # Dark sites
    LightPollutionSite("Atacama Desert", -23.4500, -69.2500, 1.0, "dark-site"),
    LightPollutionSite("Mauna Kea", 19.8207, -155.4681, 1.0, "dark-site"),
    LightPollutionSite("NamibRand", -24.9500, 16.0000, 1.0, "dark-site"),
    LightPollutionSite("Great Basin National Park", 38.9832, -114.3000, 1.1, "dark-site"),
    LightPollutionSite("Natural Bridges", 37.6014, -109.9753, 1.2, "dark-site"),
    LightPollutionSite("Cherry Springs", 41.6626, -77.8169, 1.9, "dark-site"),
    LightPollutionSite("Death Valley", 36.5323, -116.9325, 1.3, "dark-site"),
    LightPollutionSite("Aoraki Mackenzie", -43.9841, 170.4644, 1.0, "dark-site"),
    LightPollutionSite("Uluru", -25.3444, 131.0369, 1.0, "dark-site"),
    LightPollutionSite("La Palma", 28.7636, -17.8834, 1.2, "dark-site"),
    LightPollutionSite("Alqueva Dark Sky Reserve", 38.2000, -7.5000, 1.5, "dark-site"),
    LightPollutionSite("Tibetan Plateau", 33.0000, 86.0000, 1.5, "dark-site"),
    LightPollutionSite("Denali", 63.0695, -151.0074, 1.0, "dark-site"),
    LightPollutionSite("Yellowstone", 44.4280, -110.5885, 2.0, "dark-site"),
    LightPollutionSite("Jasper Dark Sky Preserve", 52.8734, -117.9540, 1.8, "dark-site"),
    LightPollutionSite("Brecon Beacons", 51.8476, -3.4767, 3.5, "rural"),
)

# (name, lat_min, lat_max, lon_min, lon_max, bortle); first match wins.
REGIONS: tuple[tuple[str, float, float, float, float, float], ...] = (
    ("central australia", -30.0, -18.0, 125.0, 140.0, 1.5),
    ("sahara", 15.0, 30.0, 0.0, 30.0, 1.5),
    ("amazon basin", -10.0, 5.0, -70.0, -50.0, 1.5),
    ("tibetan plateau", 28.0, 36.0, 80.0, 95.0, 1.5),
    ("northern canada", 60.0, 91.0, -130.0, -80.0, 1.5),
    ("antarctica", -91.0, -70.0, -181.0, 181.0, 1.5),
    ("southeast asia", 0.0, 20.0, 95.0, 110.0, 5.5),
    ("central europe", 45.0, 55.0, 5.0, 20.0, 5.5),
    ("eastern usa", 30.0, 45.0, -90.0, -75.0, 5.5),
)


def regional_bortle(coordinate: GeoCoordinate) -> float:
    """Coarse Bortle guess for places far from every catalogued site."""
    lat, lon = coordinate.latitude_deg, coordinate.longitude_deg
    for _, lat_min, lat_max, lon_min, lon_max, bortle in REGIONS:
        if lat_min < lat < lat_max and lon_min < lon < lon_max:
            return bortle
    return DEFAULT_BORTLE


def estimate_bortle(coordinate: GeoCoordinate, sites=SITES) -> float | None:
    """Inverse-distance Bortle estimate from the nearest catalogued sites.

    A site within ``DIRECT_RADIUS_KM`` answers with its own value. When the
    nearest site is more than ``MAX_REACH_KM`` away, the regional guess is
    used instead. Non-finite coordinates give ``None``.
    """
    if not coordinate.is_finite():
        return None
    if not sites:
        return regional_bortle(coordinate)

    nearest = sorted(
        ((haversine_km(coordinate, site.coordinate), site) for site in sites),
        key=lambda pair: pair[0],
    )[:NEIGHBOURS]

    if nearest[0][0] > MAX_REACH_KM:
        return regional_bortle(coordinate)
    if nearest[0][0] < DIRECT_RADIUS_KM:
        return nearest[0][1].bortle

    total_weight = 0.0
    weighted = 0.0
    for distance, site in nearest:
        weight = 1.0 / max(1.0, distance)
        total_weight += weight
        weighted += site.bortle * weight
    return weighted / total_weight


class CatalogLightPollutionProvider(LightPollutionProvider):
    """Estimates Bortle from a built-in table of cities and dark-sky sites."""

    name = "catalog"

    def __init__(self, sites=SITES):
        self.sites = tuple(sites)

    async def fetch_light_pollution(self, coordinate: GeoCoordinate) -> float | None:
        bortle = estimate_bortle(coordinate, self.sites)
        logger.debug("catalog Bortle for %s: %s", coordinate.key(4), bortle)
        return bortle

    def is_available(self) -> dict:
        return {"ok": True, "detail": f"{len(self.sites)} catalogued sites"}
