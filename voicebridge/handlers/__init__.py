"""
Handlers module for Telnyx call control notifications.

Key components:
- call_lifecycle: The CallLifecycleController, which places outbound calls, tracks
  each call's state in a CallRegistry, and activates media streaming when Telnyx
  reports that a call was answered.

Usage examples:
```python
from fastapi import BackgroundTasks, FastAPI, Request

from voicebridge.handlers.call_lifecycle import CallLifecycleController
from voicebridge.models.telnyx_schemas import CallNotification

controller = CallLifecycleController.from_settings(settings, telnyx_client)

@app.post("/telnyx-webhook")
async def telnyx_webhook(request: Request, background_tasks: BackgroundTasks):
    notification = CallNotification.from_webhook(await request.json())
    background_tasks.add_task(controller.handle_notification, notification)
    return {"ok": True}
```
"""

from voicebridge.handlers.call_lifecycle import CallLifecycleController

# Handlers module initialization
