"""Search links on supported grocery retailers, tagged with our utm_source."""

from urllib.parse import quote

from app.errors import InvalidRetailerError

RETAILERS = ("tesco", "sainsburys")

_SEARCH_URLS = {
    "tesco": "https://www.tesco.com/groceries/en-GB/search?query={query}&utm_source={utm}",
    "sainsburys": "https://www.sainsburys.co.uk/gol-ui/SearchDisplayView?searchTerm={query}&utm_source={utm}",
}


def _encode(value: str) -> str:
    # Same safe set as JavaScript's encodeURIComponent.
    return quote(value, safe="-_.!~*'()")


def build_retailer_search_url(retailer: str, search_query: str, utm_source: str) -> str:
    key = (retailer or "").strip().lower()
    template = _SEARCH_URLS.get(key)
    if template is None:
        raise InvalidRetailerError(detail={"retailer": retailer, "supported": list(RETAILERS)})
    return template.format(query=_encode(search_query.strip()), utm=_encode(utm_source))
