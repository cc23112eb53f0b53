"""
Service identity stamped on every log line.

Lets lines from several API replicas be told apart once they land in the
same log collector.
"""

from functools import lru_cache
import os


@lru_cache(maxsize=1)
def get_service_context() -> str:
    service_name = os.getenv('SERVICE_NAME', 'expo-booking')
    deploy_env = os.getenv('DEPLOY_ENV', 'local_dev')

    # ECS exposes the task id as the last path segment: .../v4/{task_id}-{suffix}
    metadata_uri = os.getenv('ECS_CONTAINER_METADATA_URI_V4', '')
    if metadata_uri:
        instance_id = metadata_uri.rstrip('/').split('/')[-1].split('-')[0][:8] or 'ecs'
    else:
        instance_id = str(os.getpid())

    return f'{service_name}@{deploy_env}:{instance_id}'
