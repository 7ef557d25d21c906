# tests/providers/test_aws_provider.py

import pytest
from unittest.mock import MagicMock, patch
from botocore.exceptions import ClientError, ProfileNotFound

from infraviz.providers.aws_provider import AwsProvider


@pytest.fixture
def mock_session():
    session = MagicMock()
    session.client.return_value.get_caller_identity.return_value = {"Account": "123456789012"}
    return session


@patch("infraviz.providers.aws_provider.boto3.Session")
def test_explicit_keys(mock_session_cls, mock_session):
    mock_session_cls.return_value = mock_session

    provider = AwsProvider(region="eu-west-1", access_key_id="AKIA", secret_access_key="secret", session_token="token")

    mock_session_cls.assert_called_once_with(
        aws_access_key_id="AKIA",
        aws_secret_access_key="secret",
        aws_session_token="token",
        region_name="eu-west-1",
    )
    assert provider.account_id == "123456789012"
    assert provider.region == "eu-west-1"
    # The validation call already returns the account id
    mock_session.client.return_value.get_caller_identity.assert_called_once_with()


@patch("infraviz.providers.aws_provider.boto3.Session")
def test_profile_and_default_chain(mock_session_cls, mock_session):
    mock_session_cls.return_value = mock_session

    AwsProvider(profile_name="audit")
    mock_session_cls.assert_called_with(profile_name="audit", region_name="us-east-1")

    AwsProvider()
    mock_session_cls.assert_called_with(region_name="us-east-1")


@patch("infraviz.providers.aws_provider.boto3.Session")
def test_missing_profile_raises_connection_error(mock_session_cls):
    mock_session_cls.side_effect = ProfileNotFound(profile="missing")

    with pytest.raises(ConnectionError, match="missing"):
        AwsProvider(profile_name="missing")


@patch("infraviz.providers.aws_provider.boto3.Session")
def test_invalid_credentials_raise_connection_error(mock_session_cls, mock_session):
    mock_session.client.return_value.get_caller_identity.side_effect = ClientError(
        {"Error": {"Code": "InvalidClientTokenId", "Message": "bad token"}}, "GetCallerIdentity"
    )
    mock_session_cls.return_value = mock_session

    with pytest.raises(ConnectionError, match="Failed to validate AWS credentials"):
        AwsProvider(access_key_id="AKIA", secret_access_key="wrong")


@patch("infraviz.providers.aws_provider.boto3.Session")
def test_get_client_uses_provider_region_by_default(mock_session_cls, mock_session):
    mock_session_cls.return_value = mock_session
    provider = AwsProvider(region="us-west-2")

    provider.get_client("ec2")
    mock_session.client.assert_called_with("ec2", region_name="us-west-2")

    provider.get_client("pricing", region="us-east-1")
    mock_session.client.assert_called_with("pricing", region_name="us-east-1")


@patch("infraviz.providers.aws_provider.boto3.Session")
def test_validate_credentials(mock_session_cls, mock_session):
    mock_session_cls.return_value = mock_session
    provider = AwsProvider()
    assert provider.validate_credentials() is True

    mock_session.client.return_value.get_caller_identity.side_effect = ClientError(
        {"Error": {"Code": "ExpiredToken", "Message": "expired"}}, "GetCallerIdentity"
    )
    assert provider.validate_credentials() is False
