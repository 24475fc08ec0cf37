"""
Simulates what Twilio sends to the webhook of a locally running bot

Run:
    python scripts/simulate_webhook.py "Acme Co"
"""
import asyncio
import sys

import httpx

URL = "http://localhost:8000/api/v1/webhook"


async def send(body: str, sender: str = "whatsapp:+15551234567"):
    """Posts one Twilio-style form payload"""
    data = {
        "From": sender,
        "Body": body,
        "ProfileName": "Test User",
        "MessageSid": "SM1234567890",
    }

    print(f"🧪 Testing webhook: {URL}")
    print(f"📤 Sending data: {data}\n")

    async with httpx.AsyncClient() as client:
        response = await client.post(URL, data=data, timeout=10.0)

    print(f"✅ Status: {response.status_code}")
    print(f"📥 Response: {response.text[:200]}")


if __name__ == "__main__":
    asyncio.run(send(sys.argv[1] if len(sys.argv) > 1 else "hello"))
