"""
Address lookup endpoint
"""

from contextlib import ExitStack

from fastapi import Request, Response
from fastapi.responses import PlainTextResponse

from ..encoding import CONTENT_TYPE, ChunkedResponse, render_chunks
from ..instrumentation import observe_request
from ..resolver import REAL_IP_HEADER, AddressRejected, defang_ip, remote_addr, resolve_address
from ..schemas.lookup import CodeName, Location, LookupResult
from ..services.geoip import GeoDatabases

def get_databases(request: Request) -> GeoDatabases:
    return request.app.state.databases

def query_value(request: Request, name: str) -> str:
    """First value of a query parameter, empty if absent"""
    values = request.query_params.getlist(name)
    return values[0] if values else ""

def build_result(ip: str, databases: GeoDatabases) -> LookupResult:
    """Query both datasets and fill in whatever they know about ``ip``"""
    result = LookupResult(ip=ip)

    # A failed City lookup does not end the request; the City fields keep
    # their zero values and the ASN lookup still runs
    city = databases.query_city(ip)

    network = databases.query_asn(ip)
    if network is not None:
        result.asn = network.asn
        result.organization = network.organization

    if city is not None:
        result.region = city.region
        result.city = city.city
        result.country = CodeName(code=city.country_code, name=city.country_name)
        result.continent = CodeName(code=city.continent_code, name=city.continent_name)
        result.location = Location(latitude=city.latitude, longitude=city.longitude)
        result.postal = city.postal

    return result

def lookup(request: Request) -> Response:
    """
    Look up the address named by the first path segment.

    An empty segment, ``self`` or ``me`` looks up the caller. Trailing
    segments are ignored, so ``/8.8.8.8``, ``/8.8.8.8/json`` and
    ``/8.8.8.8/geo`` answer the same. Registered for every method.
    """
    # Decoded path; an escaped ? or # stays part of it
    path = request.scope["path"]
    remote = remote_addr(request.client)

    with ExitStack() as stack:
        observation = stack.enter_context(
            observe_request(request.method, defang_ip(remote), path)
        )
        try:
            ip = resolve_address(path, request.headers.getlist(REAL_IP_HEADER), remote)
        except AddressRejected as e:
            observation.status = e.status_code
            return PlainTextResponse(
                e.message + "\n",
                status_code=e.status_code,
                headers={"X-Content-Type-Options": "nosniff"}
            )

        observation.ipaddress = ip
        result = build_result(ip, get_databases(request))

        chunks = render_chunks(
            result,
            callback=query_value(request, "callback"),
            pretty=query_value(request, "pretty") == "1"
        )
        observation.status = 200
        # The observation is recorded once the body has been written
        return ChunkedResponse(
            chunks,
            on_close=stack.pop_all().close,
            status_code=200,
            media_type=CONTENT_TYPE
        )
