from mangum import Mangum
from main import app

# AWS Lambda entrypoint. API Gateway REST integrations buffer the response, so
# the event stream arrives in one piece there; Function URLs with response
# streaming or a containerized ASGI host deliver it incrementally.
handler = Mangum(app)
