"""AgentSlice -- 多 Agent 流水线中各角色的状态投影

current_agent 只是便捷投影：最近一个进入 working 的角色，
该角色 completed / error 时清空。
"""

from slidepilot.core.models import AgentState, AgentStatus, AgentType


class AgentSlice:
    def __init__(self) -> None:
        self.agent_status: dict[AgentType, AgentState] = {}
        self.current_agent: AgentType | None = None
        self.reset()

    def set_status(
        self,
        agent: AgentType,
        status: AgentStatus,
        progress: int | None = None,
    ) -> None:
        state = self.agent_status[agent]
        update: dict = {"status": status}
        if progress is not None:
            update["progress"] = progress
        self.agent_status[agent] = state.model_copy(update=update)

        if status == AgentStatus.WORKING:
            self.current_agent = agent
        elif status in (AgentStatus.COMPLETED, AgentStatus.ERROR) and self.current_agent == agent:
            self.current_agent = None

    def set_action(self, agent: AgentType, action: str) -> None:
        self.agent_status[agent] = self.agent_status[agent].model_copy(
            update={"current_action": action}
        )

    @property
    def current_agent_status(self) -> AgentState | None:
        if self.current_agent is None:
            return None
        return self.agent_status[self.current_agent]

    def reset(self) -> None:
        self.agent_status = {agent: AgentState(agent=agent) for agent in AgentType}
        self.current_agent = None
