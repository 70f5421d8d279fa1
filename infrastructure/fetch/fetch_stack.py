"""
Fetch Stack for the auction-house ingestion jobs.

Creates the trigger and loader topics, both fetch Lambda functions with
their IAM grants, the schedules that publish triggers, and CloudWatch
alarms on function errors.
"""

import base64
import json
from pathlib import Path

from aws_cdk import (
    Stack,
    Duration,
    Tags,
    aws_cloudwatch as cloudwatch,
    aws_ecr_assets as ecr_assets,
    aws_events as events,
    aws_events_targets as targets,
    aws_lambda as lambda_,
    aws_logs as logs,
    aws_s3 as s3,
    aws_secretsmanager as secretsmanager,
    aws_sns as sns,
    aws_sns_subscriptions as subscriptions,
    CfnOutput,
)
from constructs import Construct

from wow_ingestion.config import AUCTIONS_JOB, REALMS_JOB, JobSpec


def trigger_message(job: JobSpec) -> str:
    """
    Trigger payload for a job, in the encoding the job expects.

    Args:
        job: Job the trigger addresses

    Returns:
        str: JSON text, base64-encoded for base64 jobs
    """
    document = json.dumps({"target": job.name})
    if job.trigger_encoding == "base64":
        return base64.b64encode(document.encode("utf-8")).decode("ascii")
    return document


class FetchStack(Stack):
    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        staging_bucket_name: str,
        client_id_secret_name: str,
        client_secret_secret_name: str,
        region_code: str = "us",
        dataset_id: str = "wow_data",
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        # Tag all resources in this stack
        Tags.of(self).add("project", "wow-auction-pipeline")

        # Image is built from the repository root
        project_dir = Path(__file__).parent.parent.parent

        staging_bucket = s3.Bucket.from_bucket_name(
            self, "StagingBucket", staging_bucket_name
        )
        client_id_secret = secretsmanager.Secret.from_secret_name_v2(
            self, "ClientIdSecret", client_id_secret_name
        )
        client_secret_secret = secretsmanager.Secret.from_secret_name_v2(
            self, "ClientSecretSecret", client_secret_secret_name
        )

        trigger_topic = sns.Topic(self, "TriggerTopic", display_name="wow-fetch-triggers")
        loader_topic = sns.Topic(self, "LoaderTopic", display_name="storagetobigtable")

        environment = {
            "WOW_REGION": region_code,
            "CLIENT_ID_SECRET_NAME": client_id_secret_name,
            "CLIENT_SECRET_SECRET_NAME": client_secret_secret_name,
            "STAGING_BUCKET": staging_bucket_name,
            "LOADER_TOPIC_ARN": loader_topic.topic_arn,
            "DATASET_ID": dataset_id,
        }

        self.functions = {}
        schedules = {
            REALMS_JOB.name: events.Schedule.cron(minute="0", hour="3"),
            AUCTIONS_JOB.name: events.Schedule.rate(Duration.hours(1)),
        }
        handlers = {
            REALMS_JOB.name: "wow_ingestion.lambda_handler.fetch_realms_handler",
            AUCTIONS_JOB.name: "wow_ingestion.lambda_handler.fetch_auctions_handler",
        }

        for job in (REALMS_JOB, AUCTIONS_JOB):
            construct_name = "".join(part.title() for part in job.name.split("-"))

            # Container image: pandas and awswrangler exceed the zip size limit
            function = lambda_.DockerImageFunction(
                self,
                f"{construct_name}Function",
                code=lambda_.DockerImageCode.from_image_asset(
                    directory=str(project_dir),
                    cmd=[handlers[job.name]],
                    platform=ecr_assets.Platform.LINUX_AMD64,
                ),
                architecture=lambda_.Architecture.X86_64,
                timeout=Duration.minutes(5),
                memory_size=1024,
                environment=environment,
            )

            logs.LogGroup(
                self,
                f"{construct_name}LogGroup",
                log_group_name=f"/aws/lambda/{function.function_name}",
                retention=logs.RetentionDays.ONE_MONTH,
            )

            client_id_secret.grant_read(function)
            client_secret_secret.grant_read(function)
            staging_bucket.grant_read_write(function)
            loader_topic.grant_publish(function)
            trigger_topic.add_subscription(subscriptions.LambdaSubscription(function))

            rule = events.Rule(
                self,
                f"{construct_name}ScheduleRule",
                schedule=schedules[job.name],
                description=f"Publishes the {job.name} trigger",
            )
            rule.add_target(
                targets.SnsTopic(
                    trigger_topic,
                    message=events.RuleTargetInput.from_text(trigger_message(job)),
                )
            )

            cloudwatch.Alarm(
                self,
                f"{construct_name}ErrorAlarm",
                alarm_name=f"{construct_name}Errors",
                alarm_description=f"Alert when the {job.name} function has errors",
                metric=function.metric_errors(statistic="Sum"),
                threshold=1,
                evaluation_periods=1,
                comparison_operator=cloudwatch.ComparisonOperator.GREATER_THAN_OR_EQUAL_TO_THRESHOLD,
            )

            CfnOutput(
                self,
                f"{construct_name}FunctionName",
                value=function.function_name,
                description=f"Name of the {job.name} Lambda function",
            )
            self.functions[job.name] = function

        CfnOutput(
            self,
            "TriggerTopicArn",
            value=trigger_topic.topic_arn,
            description="Topic the fetch jobs listen on",
        )
        CfnOutput(
            self,
            "LoaderTopicArn",
            value=loader_topic.topic_arn,
            description="Topic the warehouse loader listens on",
        )

        self.trigger_topic = trigger_topic
        self.loader_topic = loader_topic
