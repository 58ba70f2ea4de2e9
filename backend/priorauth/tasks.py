import logging
from celery import shared_task
from django.conf import settings

from priorauth import ledger
from priorauth.exceptions import IntegrationError, NotFoundError

logger = logging.getLogger(__name__)

POLLER_ACTOR_ID = 'system:status-poller'


@shared_task(
    bind=True,
    max_retries=3,
    default_retry_delay=30,   # 初始重试延迟（秒），指数退避会乘以 2^retry_count
    acks_late=True,           # 任务执行完才 ack，防止 worker 崩溃时任务丢失
    reject_on_worker_lost=True,
)
def check_prior_auth_status(self, tenant_id: str, pa_id: str):
    """
    后台对账单个 PA request。

    重试策略：
      - 只对 IntegrationError（payer 调用失败）重试，最多 3 次
      - 指数退避：30s → 60s → 120s
      - 记录不存在直接结束，不重试
    """
    from priorauth.services import PriorAuthLifecycle

    logger.info("[Celery][check_prior_auth_status] PA %s tenant=%s (attempt %d/%d)",
                pa_id, tenant_id, self.request.retries + 1, self.max_retries + 1)

    try:
        result = PriorAuthLifecycle().check_status(tenant_id, POLLER_ACTOR_ID, pa_id)
    except NotFoundError:
        logger.error("[Celery] PA %s 不存在（tenant=%s），跳过", pa_id, tenant_id)
        return None
    except IntegrationError as exc:
        if self.request.retries < self.max_retries:
            countdown = self.default_retry_delay * (2 ** self.request.retries)
            logger.warning("[Celery] PA %s 状态查询失败，%ds 后重试: %s", pa_id, countdown, exc.message)
            raise self.retry(exc=exc, countdown=countdown)
        logger.error("[Celery] PA %s 已达最大重试次数，放弃本轮对账", pa_id)
        return None

    if result.changed:
        logger.info("[Celery] PA %s 状态更新为 %s", pa_id, result.status)
    return result.status


@shared_task
def poll_prior_auth_statuses():
    """
    由 celery beat 周期调用：为每个 submitted / needs_info 的 PA request
    分发一个 check_prior_auth_status 任务。返回分发数量。
    """
    from priorauth.repository import DjangoPriorAuthRepository

    batch_size = getattr(settings, 'PA_STATUS_POLL_BATCH_SIZE', 500)
    targets = DjangoPriorAuthRepository().ids_with_status(ledger.RECONCILABLE_STATUSES, batch_size)

    for tenant_id, pa_id in targets:
        check_prior_auth_status.delay(tenant_id, pa_id)

    logger.info("[Celery][poll_prior_auth_statuses] 已分发 %d 个状态查询任务", len(targets))
    return len(targets)
