from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import cors_origins, get_settings

from app.api.routes import health
from app.api.routes import razorpay_config
from app.api.routes import subscriptions
from app.api.routes import razorpay_webhooks
from app.api.routes import cleanup


app = FastAPI(title="Subscription Sheets Relay")

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins(),  # exact matches
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


app.include_router(health.router, tags=["Health"])
app.include_router(razorpay_config.router, tags=["Razorpay Config"])
app.include_router(subscriptions.router, tags=["Subscriptions"])
app.include_router(razorpay_webhooks.router, tags=["Razorpay Webhooks"])
app.include_router(cleanup.router, tags=["Cleanup"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=get_settings().port)
