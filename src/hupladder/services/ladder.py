"""HUP ladder control loop."""

import asyncio
import logging
import random
from typing import Awaitable, Callable, Optional

from hupladder.config import LadderConfig
from hupladder.errors import AuthenticationError, BalenaAPIError
from hupladder.models.state import LadderOutcome, LadderState
from hupladder.models.status import HUPStatusEnum, LadderStageEnum
from hupladder.services.balena import BalenaClient
from hupladder.services.selector import select_target_version
from hupladder.utils.versions import version_gt

Sleep = Callable[[float], Awaitable[None]]


class LadderRunner:
    """Steps one device through successive host OS updates.

    Flow per outer iteration:
    1. Wait while an update is in progress (awaitIdle)
    2. Wait for the device to come online (awaitOnline)
    3. Pick the next target version; none left means the ladder is complete
    4. Trigger the update, wait one poll interval, check whether it failed

    Both waits share one local counter; reaching the failure budget there
    ends the run immediately. Failed updates count against the same budget
    for the whole run.
    """

    def __init__(
        self,
        config: LadderConfig,
        client: BalenaClient,
        sleep: Sleep = asyncio.sleep,
        rng: Optional[random.Random] = None,
    ):
        """Initialize ladder runner.

        Args:
            config: Ladder configuration
            client: Device-management API client
            sleep: Awaitable delay used for every wait
            rng: Random source for random target order
        """
        self.logger = logging.getLogger("hupladder.ladder")
        self.config = config
        self.client = client
        self.sleep = sleep
        self.rng = rng or random.Random()
        self.state = LadderState(uuid=config.uuid, max_fails=config.max_fails)

    async def run(self) -> LadderOutcome:
        """Run the ladder until it completes or a budget is exhausted.

        Returns:
            LadderOutcome describing how the run ended
        """
        state = self.state
        try:
            await self._authenticate()
            state.device_type = await self.client.get_device_type(state.uuid)
            self.logger.info(f"Device {state.uuid} is a {state.device_type}")

            while not state.budget_exceeded:
                state.start_iteration()

                await self._await_idle()
                await self._await_online()
                if state.wait_exhausted:
                    self.logger.error("HUP ladder failed, device did not complete or come back")
                    return self._finish(LadderStageEnum.WAIT_EXHAUSTED)

                target = await self._compute_target()
                if target is None:
                    self.logger.info("HUP ladder completed")
                    return self._finish(LadderStageEnum.COMPLETED)

                await self._trigger_update(target)

                self.logger.info("Giving it a minute..")
                self._enter(LadderStageEnum.WAIT_AND_VERIFY)
                await self.sleep(self.config.poll_interval)
                if await self.hup_failed(target):
                    state.fails += 1
                    self.logger.error(
                        f"HUP failed, retrying (failures: {state.fails}/{state.max_fails})..."
                    )

            self.logger.error(f"HUP ladder exceeded error budget of {state.max_fails}")
            return self._finish(LadderStageEnum.EXCEEDED_BUDGET)

        except AuthenticationError as e:
            self.logger.error(f"Authentication failed: {e}")
            state.last_error = str(e)
            return self._finish(LadderStageEnum.AUTH_FAILED)
        except BalenaAPIError as e:
            self.logger.error(f"HUP ladder aborted: {e}")
            state.last_error = str(e)
            return self._finish(LadderStageEnum.ERROR)

    async def ongoing_hup(self) -> bool:
        """True while the device reports an update in progress."""
        status = await self.client.get_os_update_status(self.state.uuid)
        return status.status == HUPStatusEnum.IN_PROGRESS

    async def hup_failed(self, target_version: str) -> bool:
        """Check whether the update to target_version failed.

        Errors while polling are logged and count as not failed.
        """
        uuid = self.state.uuid
        try:
            status = await self.client.get_os_update_status(uuid)
            if status.status == HUPStatusEnum.ERROR or status.fatal:
                if status.error:
                    self.state.last_error = status.error
                return True
            if status.status == HUPStatusEnum.DONE:
                os_version = await self.client.get_os_version(uuid)
                self.state.current_version = os_version
                if version_gt(target_version, os_version):
                    self.logger.warning(
                        f"HUP done but not completed: target {target_version}, "
                        f"current: {os_version}"
                    )
                    return True
        except Exception as e:
            self.logger.error(f"error while getting status: {e}")
        return False

    async def _authenticate(self) -> None:
        self._enter(LadderStageEnum.INIT)
        await self.client.login_with_token(self.config.token)
        try:
            logged_in = await self.client.is_authenticated()
        except BalenaAPIError as e:
            raise AuthenticationError(f"Authentication Error: {e}") from e
        if not logged_in:
            raise AuthenticationError("Authentication Error")
        self.logger.debug("Authenticated against the API")

    async def _await_idle(self) -> None:
        state = self.state
        self._enter(LadderStageEnum.AWAIT_IDLE)
        while not state.wait_exhausted and await self.ongoing_hup():
            self.logger.info("HUP ongoing...")
            await self.sleep(self.config.poll_interval)
            state.local_fails += 1

    async def _await_online(self) -> None:
        state = self.state
        self._enter(LadderStageEnum.AWAIT_ONLINE)
        while not state.wait_exhausted and not await self.client.is_online(state.uuid):
            self.logger.info("Waiting for device to connect...")
            await self.sleep(self.config.poll_interval)
            state.local_fails += 1

    async def _compute_target(self) -> Optional[str]:
        state = self.state
        self._enter(LadderStageEnum.COMPUTE_TARGET)
        state.current_version = await self.client.get_os_version(state.uuid)
        supported = await self.client.get_supported_os_update_versions(
            state.device_type, state.current_version
        )
        target = select_target_version(
            supported.versions,
            random_order=self.config.random_order,
            step=self.config.step,
            rng=self.rng,
        )
        self.logger.debug(
            f"Current {state.current_version}, candidates {supported.versions}, "
            f"target {target}"
        )
        state.target_version = target
        return target

    async def _trigger_update(self, target_version: str) -> None:
        state = self.state
        self._enter(LadderStageEnum.TRIGGER_UPDATE)
        self.logger.info(f"Updating {state.uuid} to {target_version}..")
        try:
            await self.client.start_os_update(state.uuid, target_version)
        except BalenaAPIError as e:
            self.logger.error(f"error while starting update: {e}")
            state.last_error = str(e)
        except Exception as e:
            self.logger.error(f"error while starting update: {e}", exc_info=True)
            state.last_error = str(e)

    def _enter(self, stage: LadderStageEnum) -> None:
        self.logger.debug(f"Stage {self.state.stage.value} -> {stage.value}")
        self.state.enter(stage)

    def _finish(self, stage: LadderStageEnum) -> LadderOutcome:
        self._enter(stage)
        return LadderOutcome(stage.value)
