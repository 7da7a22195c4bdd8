import httpx

from infrastructure.external.sms import SmsClient, SmsDeliveryError
from infrastructure.tasks import TaskDispatcher, celery_app
from infrastructure.tasks.tasks import notifications


class _FakeSmsClient:
    def __init__(self, configured=True):
        self.configured = configured
        self.sent = []

    def is_configured(self):
        return self.configured

    async def send(self, phone, text):
        self.sent.append((phone, text))
        return {}


def test_tasks_are_registered_and_routed():
    assert "notifications.send_sms" in celery_app.tasks
    assert "payments.reconcile_booking_sync" in celery_app.tasks
    assert celery_app.conf.task_routes["notifications.*"] == {"queue": "high"}
    assert "payments-reconcile-booking-sync" in celery_app.conf.beat_schedule


def test_dispatcher_runs_sms_task_eagerly(monkeypatch):
    fake = _FakeSmsClient()
    monkeypatch.setattr(notifications, "build_sms_client", lambda: fake)
    assert celery_app.conf.task_always_eager is True

    TaskDispatcher().send_sms("9876543210", "hello")
    assert fake.sent == [("9876543210", "hello")]


def test_sms_task_skips_when_unconfigured(monkeypatch):
    monkeypatch.setattr(notifications, "build_sms_client", lambda: _FakeSmsClient(configured=False))
    result = notifications.send_sms.apply(kwargs={"phone": "9876543210", "text": "hello"})
    assert result.get() == {"sent": False}


def test_sms_task_posts_once_when_provider_rejects(monkeypatch):
    posts = []

    def handler(request):
        posts.append(request)
        return httpx.Response(500, json={"error": "upstream"})

    client = SmsClient(
        api_url="https://sms.example.test/send",
        api_key="sms-key",
        sender_id="CHLMEH",
        max_retries=3,
        retry_backoff=0,
        transport=httpx.MockTransport(handler),
    )
    monkeypatch.setattr(notifications, "build_sms_client", lambda: client)

    result = notifications.send_sms.apply(kwargs={"phone": "9876543210", "text": "hello"})
    assert result.failed()
    assert isinstance(result.result, SmsDeliveryError)
    assert len(posts) == 1
