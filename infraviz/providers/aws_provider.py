import boto3
from botocore.exceptions import ClientError
from typing import Any, Dict, Optional, Tuple

from loguru import logger


class AwsProvider:
    """
    Holds the boto3 session for one scan and hands out service clients.

    The session is validated with STS when the provider is created, so a
    constructed provider always has a usable session and a known account id.
    """

    def __init__(
        self,
        region: str = "us-east-1",
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
        session_token: Optional[str] = None,
        profile_name: Optional[str] = None,
    ):
        """
        Args:
            region: Region scanned with this provider, also the default client region.
            access_key_id: Access key id; used together with `secret_access_key`.
            secret_access_key: Secret access key.
            session_token: Session token for temporary credentials.
            profile_name: Named profile from ~/.aws/credentials or ~/.aws/config,
                used when no explicit keys are given.

        Raises:
            ConnectionError: If the session cannot be created or STS rejects it.
        """
        self.region = region
        self._profile_name = profile_name
        self.session, self.account_id = self._create_session(access_key_id, secret_access_key, session_token)

    def _session_kwargs(self, access_key_id: Optional[str], secret_access_key: Optional[str],
                        session_token: Optional[str]) -> Dict[str, Any]:
        # Explicit keys win over a profile; neither means the default credential chain
        if access_key_id and secret_access_key:
            logger.info("Creating AWS session from explicit access keys.")
            return {
                "aws_access_key_id": access_key_id,
                "aws_secret_access_key": secret_access_key,
                "aws_session_token": session_token or None,
                "region_name": self.region,
            }
        if self._profile_name:
            logger.info(f"Creating AWS session from profile: {self._profile_name}")
            return {"profile_name": self._profile_name, "region_name": self.region}
        logger.info("Creating AWS session from the default credential chain.")
        return {"region_name": self.region}

    def _create_session(self, access_key_id: Optional[str], secret_access_key: Optional[str],
                        session_token: Optional[str]) -> Tuple[boto3.Session, str]:
        """Builds the session and returns it with the account id STS reports for it."""
        try:
            session = boto3.Session(**self._session_kwargs(access_key_id, secret_access_key, session_token))
        except Exception as e: # ProfileNotFound, malformed config files
            source = f"profile '{self._profile_name}'" if self._profile_name else "the supplied credentials"
            logger.error(f"Could not create AWS session from {source}: {e}")
            raise ConnectionError(f"Failed to initialize AWS session using {source}: {e}") from e

        try:
            account_id = session.client("sts").get_caller_identity()["Account"]
        except Exception as e: # ClientError, NoCredentialsError, endpoint errors
            logger.error(f"AWS session validation failed: {e}")
            raise ConnectionError(f"Failed to validate AWS credentials: {e}") from e

        logger.info(f"AWS session validated for account {account_id} in {self.region}.")
        return session, account_id

    def get_client(self, service_name: str, region: Optional[str] = None) -> Any:
        """Boto3 client for `service_name`, in `region` or the provider's region."""
        try:
            return self.session.client(service_name, region_name=region or self.region)
        except Exception as e:
            logger.error(f"Failed to create client for {service_name}: {str(e)}")
            raise

    def validate_credentials(self) -> bool:
        """True while STS still accepts the session's credentials."""
        try:
            self.get_client("sts").get_caller_identity()
            return True
        except ClientError:
            return False
