import logging
import math
import uuid
from datetime import datetime
from typing import Mapping

from sqlalchemy import and_, distinct, func, or_, select

from estate_market.core.date_helper import as_utc
from estate_market.core.paginate import PaginatePage
from estate_market.models.enums import (
    PROPERTY_SORT_FIELDS,
    HousePolicy,
    ListingType,
    PropertyCondition,
    PropertyStatus,
    PropertyTypes,
    SortOrder,
)
from estate_market.models.models import Property, PropertyAmenity

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0088
KM_PER_DEGREE = 111.045

TRUE_VALUES = {"true", "1", "yes"}
FALSE_VALUES = {"false", "0", "no"}


def parse_bool(value) -> bool | None:
    if value is None:
        return None
    value = str(value).strip().lower()
    if value in TRUE_VALUES:
        return True
    if value in FALSE_VALUES:
        return False
    return None


def parse_float(value) -> float | None:
    if value is None or str(value).strip() == "":
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def parse_int(value) -> int | None:
    number = parse_float(value)
    if number is None:
        return None
    return int(number)


def parse_enum(enum_cls, value):
    if value is None:
        return None
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        return None


def parse_uuid(value) -> uuid.UUID | None:
    if not value:
        return None
    try:
        return uuid.UUID(str(value).strip())
    except ValueError:
        return None


def parse_date(value) -> datetime | None:
    if not value:
        return None
    raw = str(value).strip()
    if len(raw) == 10:
        raw = f"{raw}T00:00:00"
    try:
        return as_utc(datetime.fromisoformat(raw.replace("Z", "+00:00")))
    except ValueError:
        return None


def bounding_box(lat: float, lng: float, radius_km: float):
    """Return (min_lat, max_lat, min_lng, max_lng) enclosing the circle."""
    dlat = radius_km / KM_PER_DEGREE
    cos_lat = math.cos(math.radians(lat))
    if abs(lat) + dlat >= 90 or abs(cos_lat) < 1e-9:
        dlng = 180.0
    else:
        dlng = min(radius_km / (KM_PER_DEGREE * abs(cos_lat)), 180.0)
    return (
        max(lat - dlat, -90.0),
        min(lat + dlat, 90.0),
        lng - dlng,
        lng + dlng,
    )


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = phi2 - phi1
    dlmb = math.radians(lng2 - lng1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlmb / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(min(1.0, math.sqrt(a)))


class PropertyFilterBuilder:
    """Turns a flat query-string mapping into SQLAlchemy criteria.

    Values that are absent or cannot be parsed are skipped rather than
    rejected. Rent-only and sale-only bounds apply only when ``listingType``
    selects that variant.
    """

    def __init__(self, params: Mapping, paginate: PaginatePage | None = None):
        self.params = params
        self.paginate = paginate or PaginatePage()
        self.listing_type: ListingType | None = parse_enum(
            ListingType, self._get("listingType")
        )

    def _get(self, *keys):
        for key in keys:
            value = self.params.get(key)
            if value is not None and str(value).strip() != "":
                return str(value).strip()
        return None

    def _get_list(self, key) -> list[str]:
        if hasattr(self.params, "getlist"):
            raw_values = self.params.getlist(key)
        else:
            raw = self.params.get(key)
            raw_values = raw if isinstance(raw, (list, tuple)) else [raw]
        items = []
        for raw in raw_values:
            if raw is None:
                continue
            for part in str(raw).split(","):
                part = part.strip()
                if part and part not in items:
                    items.append(part)
        return items

    def _range(self, column, name: str, caster):
        single = caster(self._get(name))
        low = caster(self._get(f"{name}[min]", f"min{name.capitalize()}"))
        high = caster(self._get(f"{name}[max]", f"max{name.capitalize()}"))

        clauses = []
        if low is None and high is None and single is not None:
            clauses.append(column >= single)
        if low is not None:
            clauses.append(column >= low)
        if high is not None:
            clauses.append(column <= high)
        return clauses

    def status_clause(self):
        status = parse_enum(PropertyStatus, self._get("status"))
        return Property.status == (status or PropertyStatus.AVAILABLE)

    def shared_clauses(self) -> list:
        clauses = [self.status_clause()]

        if self.listing_type is not None:
            clauses.append(Property.listing_type == self.listing_type)

        property_type = parse_enum(PropertyTypes, self._get("propertyType"))
        if property_type is not None:
            clauses.append(Property.property_type == property_type)

        clauses.extend(self._range(Property.bedrooms, "bedrooms", parse_int))
        clauses.extend(self._range(Property.bathrooms, "bathrooms", parse_float))

        city = self._get("city")
        if city:
            clauses.append(Property.city.icontains(city, autoescape=True))
        neighborhood = self._get("neighborhood")
        if neighborhood:
            clauses.append(
                Property.neighborhood.icontains(neighborhood, autoescape=True)
            )

        amenities = self._get_list("amenities")
        if amenities:
            clauses.append(self.amenities_clause(amenities))

        featured = parse_bool(self._get("featured"))
        if featured is not None:
            clauses.append(Property.featured.is_(featured))
        verified = parse_bool(self._get("isVerified"))
        if verified is not None:
            clauses.append(Property.is_verified.is_(verified))

        search = self._get("search")
        if search:
            clauses.append(
                or_(
                    Property.title.icontains(search, autoescape=True),
                    Property.description.icontains(search, autoescape=True),
                    Property.neighborhood.icontains(search, autoescape=True),
                    Property.city.icontains(search, autoescape=True),
                )
            )

        geo = self.geo_clause()
        if geo is not None:
            clauses.append(geo)

        return clauses

    def amenities_clause(self, names: list[str]):
        wanted = sorted({name.lower() for name in names})
        having_all = (
            select(PropertyAmenity.property_id)
            .where(func.lower(PropertyAmenity.name).in_(wanted))
            .group_by(PropertyAmenity.property_id)
            .having(func.count(distinct(func.lower(PropertyAmenity.name))) == len(wanted))
        )
        return Property.id.in_(having_all)

    def circle(self) -> tuple[float, float, float] | None:
        lat = parse_float(self._get("lat"))
        lng = parse_float(self._get("lng"))
        radius = parse_float(self._get("radius"))
        if lat is None or lng is None or not radius or radius <= 0:
            return None
        if not (-90 <= lat <= 90 and -180 <= lng <= 180):
            return None
        return lat, lng, radius

    def geo_clause(self):
        """Bounding-box prefilter; exact distance is checked by ``contains``."""
        circle = self.circle()
        if circle is None:
            return None

        min_lat, max_lat, min_lng, max_lng = bounding_box(*circle)
        if max_lng - min_lng >= 360:
            lng_clause = Property.longitude.is_not(None)
        elif min_lng < -180:
            lng_clause = or_(
                Property.longitude >= min_lng + 360,
                Property.longitude <= max_lng,
            )
        elif max_lng > 180:
            lng_clause = or_(
                Property.longitude >= min_lng,
                Property.longitude <= max_lng - 360,
            )
        else:
            lng_clause = Property.longitude.between(min_lng, max_lng)
        return and_(
            Property.latitude.is_not(None),
            Property.longitude.is_not(None),
            Property.latitude.between(min_lat, max_lat),
            lng_clause,
        )

    def contains(self, prop: Property) -> bool:
        circle = self.circle()
        if circle is None:
            return True
        if prop.latitude is None or prop.longitude is None:
            return False
        lat, lng, radius = circle
        return haversine_km(lat, lng, prop.latitude, prop.longitude) <= radius

    def rent_clauses(self) -> list:
        clauses = []
        min_rent = parse_float(self._get("minRent"))
        max_rent = parse_float(self._get("maxRent"))
        if min_rent is not None:
            clauses.append(Property.rent_price >= min_rent)
        if max_rent is not None:
            clauses.append(Property.rent_price <= max_rent)

        min_stay = parse_int(self._get("minStay"))
        if min_stay:
            clauses.append(Property.minimum_stay >= min_stay)

        furnished = parse_bool(self._get("isFurnished", "furnished"))
        if furnished is not None:
            clauses.append(Property.is_furnished.is_(furnished))

        pet_policy = parse_enum(HousePolicy, self._get("petPolicy"))
        if pet_policy is not None:
            clauses.append(Property.pet_policy == pet_policy)

        available_from = parse_date(self._get("availableFrom"))
        if available_from is not None:
            clauses.append(Property.available_from <= available_from)
        return clauses

    def sale_clauses(self) -> list:
        clauses = []
        min_price = parse_float(self._get("minPrice"))
        max_price = parse_float(self._get("maxPrice"))
        if min_price is not None:
            clauses.append(Property.sale_price >= min_price)
        if max_price is not None:
            clauses.append(Property.sale_price <= max_price)

        conditions = [
            parsed
            for parsed in (
                parse_enum(PropertyCondition, raw)
                for raw in self._get_list("propertyCondition")
                or self._get_list("condition")
            )
            if parsed is not None
        ]
        if conditions:
            clauses.append(Property.property_condition.in_(conditions))

        negotiable = parse_bool(self._get("priceNegotiable", "negotiable"))
        if negotiable is not None:
            clauses.append(Property.price_negotiable.is_(negotiable))
        return clauses

    def where(self) -> list:
        clauses = self.shared_clauses()
        if self.listing_type == ListingType.RENT:
            clauses.extend(self.rent_clauses())
        elif self.listing_type == ListingType.SALE:
            clauses.extend(self.sale_clauses())
        return clauses

    def price_column(self):
        if self.listing_type == ListingType.RENT:
            return Property.rent_price
        if self.listing_type == ListingType.SALE:
            return Property.sale_price
        return func.coalesce(Property.rent_price, Property.sale_price)

    def order_by(self) -> list:
        sort_by = self._get("sortBy")
        if sort_by not in PROPERTY_SORT_FIELDS:
            sort_by = "createdAt"
        order = parse_enum(SortOrder, self._get("sortOrder")) or SortOrder.DESC

        columns = {
            "price": self.price_column(),
            "createdAt": Property.created_at,
            "updatedAt": Property.updated_at,
            "areaSize": Property.area_size,
            "bedrooms": Property.bedrooms,
            "views": Property.views,
        }
        column = columns[sort_by]
        primary = column.asc() if order == SortOrder.ASC else column.desc()
        return [primary, Property.id.asc()]

    def page_and_limit(self) -> tuple[int, int]:
        return self.paginate.clamp(self._get("page"), self._get("limit"))
