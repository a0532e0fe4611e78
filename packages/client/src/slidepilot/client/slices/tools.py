"""ToolSlice -- 工具调用历史

同一工具 id 的 started / completed / failed 汇聚为一条演进中的记录。
生命周期单调：pending/running -> {completed, failed}；
更早状态的迟到事件被视为过期并丢弃，终态一旦写入不再改变。
"""

from slidepilot.core.models import TOOL_STATUS_RANK, ToolAction


class ToolSlice:
    def __init__(self) -> None:
        self.tool_history: dict[str, ToolAction] = {}

    def upsert_tool(self, tool: ToolAction) -> bool:
        """写入工具记录

        Returns:
            False 如果事件过期被丢弃
        """
        existing = self.tool_history.get(tool.id)
        if existing is None:
            # 首次即观察到完成的工具也直接以终态落地
            self.tool_history[tool.id] = tool
            return True

        existing_rank = TOOL_STATUS_RANK[existing.status]
        incoming_rank = TOOL_STATUS_RANK[tool.status]
        if incoming_rank < existing_rank:
            return False
        if incoming_rank == existing_rank and existing.status != tool.status:
            # completed 与 failed 同级：先到的终态胜出
            return False

        merged = existing.model_copy(update=tool.model_dump(exclude_none=True))
        self.tool_history[tool.id] = merged
        return True

    def get(self, tool_id: str) -> ToolAction | None:
        return self.tool_history.get(tool_id)

    def reset(self) -> None:
        self.tool_history.clear()
