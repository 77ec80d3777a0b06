import pytest

from notifications.config import DEFAULT_LANDLORD_NAME, load_settings
from notifications.errors import ConfigurationError


def test_defaults_from_empty_environment():
    settings = load_settings({})

    assert settings.from_email is None
    assert settings.email_backend == "smtp"
    assert settings.sms_backend == "none"
    assert settings.smtp_port == 587
    assert settings.smtp_use_tls is True
    assert settings.transport_timeout == 10.0
    assert settings.bulk_workers == 1
    assert settings.landlord_name == DEFAULT_LANDLORD_NAME


def test_environment_overrides():
    settings = load_settings(
        {
            "SES_FROM_EMAIL": "ses@dwell.test",
            "NOTIFY_EMAIL_BACKEND": "SES",
            "NOTIFY_SMS_BACKEND": "sns",
            "AWS_REGION": "eu-west-1",
            "SNS_REGION": "us-west-2",
            "SMTP_USE_TLS": "0",
            "NOTIFY_TRANSPORT_TIMEOUT": "2.5",
            "NOTIFY_BULK_WORKERS": "8",
            "NOTIFY_LANDLORD_NAME": "Elm Street Rentals",
        }
    )

    assert settings.from_email == "ses@dwell.test"
    assert settings.email_backend == "ses"
    assert settings.sms_backend == "sns"
    assert settings.ses_region == "eu-west-1"
    assert settings.sns_region == "us-west-2"
    assert settings.smtp_use_tls is False
    assert settings.transport_timeout == 2.5
    assert settings.bulk_workers == 8
    assert settings.landlord_name == "Elm Street Rentals"


def test_notify_from_email_wins_over_ses_address():
    settings = load_settings({"NOTIFY_FROM_EMAIL": "noreply@dwell.test", "SES_FROM_EMAIL": "ses@dwell.test"})
    assert settings.from_email == "noreply@dwell.test"


def test_reads_process_environment(monkeypatch):
    monkeypatch.setenv("NOTIFY_FROM_EMAIL", "env@dwell.test")
    monkeypatch.setenv("SMTP_HOST", "smtp.dwell.test")

    settings = load_settings()

    assert settings.from_email == "env@dwell.test"
    assert settings.smtp_host == "smtp.dwell.test"


@pytest.mark.parametrize(
    "env",
    [
        {"NOTIFY_EMAIL_BACKEND": "fax"},
        {"NOTIFY_SMS_BACKEND": "pager"},
        {"SMTP_PORT": "not-a-port"},
        {"NOTIFY_BULK_WORKERS": "0"},
        {"NOTIFY_TRANSPORT_TIMEOUT": "0"},
        {"NOTIFY_TRANSPORT_TIMEOUT": "-5"},
    ],
)
def test_invalid_settings_raise(env):
    with pytest.raises(ConfigurationError):
        load_settings(env)
