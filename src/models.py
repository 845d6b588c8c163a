from dataclasses import dataclass

NO_TITLE = "No title"
NO_TOWN = "No town"
NO_PRICE = "No price"
NO_LINK = "No link"
NO_IMAGE = "No image"
NO_TYPE = "No type"
NO_URL = "No url-title-d"


@dataclass(frozen=True)
class Listing:
    id: int
    title: str = NO_TITLE
    town: str = NO_TOWN
    price: str = NO_PRICE
    link: str = NO_LINK
    image: str = NO_IMAGE
    property_type: str = NO_TYPE
    url: str = NO_URL

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "town": self.town,
            "price": self.price,
            "link": self.link,
            "image": self.image,
            "propertyType": self.property_type,
            "url": self.url,
        }


@dataclass(frozen=True)
class GeoCoordinate:
    lat: float | None = None
    lon: float | None = None

    @classmethod
    def unresolved(cls) -> "GeoCoordinate":
        return cls(lat=None, lon=None)

    @property
    def resolved(self) -> bool:
        return self.lat is not None and self.lon is not None


@dataclass(frozen=True)
class EnrichedListing:
    listing: Listing
    latitude: float | None = None
    longitude: float | None = None

    def to_dict(self) -> dict:
        data = self.listing.to_dict()
        data["latitude"] = self.latitude
        data["longitude"] = self.longitude
        return data
