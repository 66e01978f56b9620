from oncall_copilot.models import ToolRequest
from oncall_copilot.tools import NO_DATA_RESULT, TOOL_CATALOGUE, StaticToolResults, ToolExecutor

TABLE = {"ALRT-001": {"get_dependency_health": {"PaymentSvc": "Degraded"}}}


class RecordingSource(StaticToolResults):
    def __init__(self, table):
        super().__init__(table)
        self.lookups = []

    def lookup(self, subject_id, tool_name):
        self.lookups.append((subject_id, tool_name))
        return super().lookup(subject_id, tool_name)


def test_catalogue_declares_object_parameters():
    names = [tool.name for tool in TOOL_CATALOGUE]
    assert "get_dependency_health" in names
    assert len(names) == len(set(names))
    for tool in TOOL_CATALOGUE:
        assert tool.parameters["type"] == "object"
        assert set(tool.parameters["required"]) <= set(tool.parameters["properties"])


def test_hit_returns_table_result_and_passes_args_through():
    executor = ToolExecutor(StaticToolResults(TABLE))
    request = ToolRequest(name="get_dependency_health", args={"service": "API", "extra": [1, 2]})

    call = executor.execute("ALRT-001", request, sequence=1)

    assert call.id == "TC_1"
    assert call.tool == "get_dependency_health"
    assert call.result == {"PaymentSvc": "Degraded"}
    assert call.args == {"service": "API", "extra": [1, 2]}
    assert call.timestamp.tzinfo is not None


def test_missing_mapping_is_a_no_data_result():
    executor = ToolExecutor(StaticToolResults(TABLE))

    call = executor.execute("ALRT-002", ToolRequest(name="get_dependency_health"), sequence=3)

    assert call.id == "TC_3"
    assert call.result == {"status": "error", "message": "no data"}


def test_unknown_tool_is_not_looked_up():
    source = RecordingSource(TABLE)
    executor = ToolExecutor(source)

    call = executor.execute("ALRT-001", ToolRequest(name="drop_database"), sequence=1)

    assert call.result == NO_DATA_RESULT
    assert source.lookups == []
