import logging
import os
import time

import dotenv
from pydantic import BaseModel

from sse_eventsource import ServerEvent, sse

dotenv.load_dotenv()
logging.basicConfig(level=logging.INFO)


class Quote(BaseModel):
    symbol: str
    price: float


def on_event(event: ServerEvent) -> None:
    if event.name == "stock":
        quote = event.parse_data(Quote)
        print(f"[{event.id}] {quote.symbol}: {quote.price}")
    else:
        print(f"[{event.id}] {event.name or 'message'}: {event.data}")


source = sse(os.getenv("SSE_TEST_URL", "http://localhost:8000/stream")).with_reconnection_time(1, unit="s").build()
source.register(on_event, on_exception=lambda e: print("error:", e), on_complete=lambda: print("stream ended"))
source.start()

try:
    time.sleep(30)
finally:
    source.close()
