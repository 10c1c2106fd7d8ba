"""Internal constants shared across the library."""

BASE_URL = "https://av-gtfsfuncs.azurewebsites.net"
USER_AGENT = "transitsync/0.1"
NEARBY_DEPARTURES_ENDPOINT = "/api/departures/nearby"
