from typing import Optional

import boto3
import moto
from aibs_informatics_test_resources import BaseTest
from botocore.client import BaseClient
from botocore.stub import Stubber


class AwsBaseTest(BaseTest):
    ACCOUNT_ID = "123456789012"
    US_EAST_1 = "us-east-1"
    US_WEST_2 = "us-west-2"

    @property
    def DEFAULT_REGION(self) -> str:
        return self.US_WEST_2

    @property
    def DEFAULT_SECRET_KEY(self) -> str:
        return "A" * 20

    @property
    def DEFAULT_ACCESS_KEY(self) -> str:
        return "A" * 20

    def set_region(self, region: Optional[str] = None):
        self.set_env_vars(
            ("AWS_REGION", region or self.DEFAULT_REGION),
            ("AWS_DEFAULT_REGION", region or self.DEFAULT_REGION),
        )

    def set_credentials(self, access_key: Optional[str] = None, secret_key: Optional[str] = None):
        self.set_env_vars(
            ("AWS_ACCESS_KEY_ID", access_key or self.DEFAULT_ACCESS_KEY),
            ("AWS_SECRET_ACCESS_KEY", secret_key or self.DEFAULT_SECRET_KEY),
            ("AWS_SECURITY_TOKEN", "testing"),
            ("AWS_SESSION_TOKEN", "testing"),
        )

    def set_aws_credentials(self):
        self.set_credentials(access_key="testing", secret_key="testing")
        self.set_region()

    def stub(self, client: BaseClient) -> Stubber:
        stubber = Stubber(client=client)
        stubber.activate()
        self.addCleanup(stubber.deactivate)
        return stubber


class EFSTestsBase(AwsBaseTest):
    """Runs every test against an EFS backend emulated by moto"""

    def setUp(self) -> None:
        super().setUp()
        self.set_aws_credentials()
        self.mock_efs = moto.mock_aws()
        self.mock_efs.start()

    def tearDown(self) -> None:
        super().tearDown()
        self.mock_efs.stop()

    @property
    def efs_client(self):
        return boto3.client("efs", region_name=self.DEFAULT_REGION)

    def create_file_system(self, file_system_name: str = "fs", **tags) -> str:
        tags = [{"Key": k, "Value": v} for k, v in tags.items()]
        tags.insert(0, {"Key": "Name", "Value": file_system_name})
        response = self.efs_client.create_file_system(
            CreationToken=file_system_name,
            Tags=tags,
        )
        return response["FileSystemId"]
