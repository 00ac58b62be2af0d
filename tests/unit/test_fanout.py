import asyncio

import pytest

from storecast.models.domain.distribution_domain import TaskSpecification
from storecast.services.distribution.fanout import TaskFanOutEngine, extract_store_id
from storecast.services.staffbase.client import StaffbaseAPIError

TASKS = [TaskSpecification(title="Count stock"), TaskSpecification(title="Clean", description="Front")]


def _engine(client, **kwargs):
    return TaskFanOutEngine(client, space_id="space-1", page_size=100, **kwargs)


@pytest.mark.parametrize(
    "title,expected",
    [
        ("Store 100", "100"),
        ("store 100", "100"),
        ("  #Store 0042 ", "0042"),
        ("Store #100", "100"),
        ("STORE-7", "7"),
        ("Storefront", None),
        ("Store 100 Hours", None),
        ("Weekly News", None),
        ("", None),
    ],
)
def test_extract_store_id(title, expected):
    assert extract_store_id(title) == expected


@pytest.mark.asyncio
async def test_discover_projects_filters_by_title_and_requested_ids(fake_staffbase, installation_factory):
    fake_staffbase.on(
        "GET",
        "/spaces/space-1/installations",
        {
            "data": [
                installation_factory("p-100", "Store 100", plugin_id="tasks"),
                installation_factory("p-200", "Store 200", plugin_id="tasks"),
                installation_factory("p-300", "Store 300", plugin_id="tasks"),
                installation_factory("n-1", "Store 100", plugin_id="news"),
                installation_factory("x-1", "Headquarters", plugin_id="tasks"),
            ]
        },
    )

    projects = await _engine(fake_staffbase).discover_projects(["100", "300", "999"])

    assert {store: p.project_id for store, p in projects.items()} == {"100": "p-100", "300": "p-300"}


@pytest.mark.asyncio
async def test_fan_out_creates_list_and_tasks_per_project(fake_staffbase, installation_factory):
    fake_staffbase.on(
        "GET",
        "/spaces/space-1/installations",
        {"data": [installation_factory("p-100", "Store 100", plugin_id="tasks")]},
    )
    fake_staffbase.on("POST", "/tasks/p-100/lists", {"id": "list-1"})
    fake_staffbase.on("POST", "/tasks/p-100/task", {"id": "task"})

    summary = await _engine(fake_staffbase).fan_out(["100"], TASKS, list_name="Holiday Hours")

    assert summary.tasks_created == 2
    assert summary.intended_tasks == 2
    list_call = fake_staffbase.calls_to("POST", "/tasks/p-100/lists")[0]
    assert list_call[2] == {"name": "Holiday Hours"}
    task_payloads = [call[2] for call in fake_staffbase.calls_to("POST", "/tasks/p-100/task")]
    assert [p["title"] for p in task_payloads] == ["Count stock", "Clean"]
    assert all(p["taskListId"] == "list-1" for p in task_payloads)
    assert all(p["status"] == "OPEN" and p["assigneeIds"] == [] for p in task_payloads)
    assert task_payloads[1]["description"] == "Front"
    assert task_payloads[0]["dueDate"] is None


@pytest.mark.asyncio
async def test_fan_out_without_rows_skips_discovery(fake_staffbase):
    summary = await _engine(fake_staffbase).fan_out(["100"], [], list_name="x")

    assert summary.tasks_created == 0
    assert fake_staffbase.calls == []


@pytest.mark.asyncio
async def test_fan_out_batches_are_bounded_and_sequential(fake_staffbase, installation_factory):
    project_count = 12
    fake_staffbase.on(
        "GET",
        "/spaces/space-1/installations",
        {"data": [installation_factory(f"p-{i}", f"Store {i}", plugin_id="tasks") for i in range(project_count)]},
    )

    active = {"now": 0, "peak": 0}
    events = []

    async def create_list(path, json, params):
        project_id = path.split("/")[2]
        active["now"] += 1
        active["peak"] = max(active["peak"], active["now"])
        events.append(("start", project_id))
        await asyncio.sleep(0.01)
        return {"id": f"list-{project_id}"}

    async def create_task(path, json, params):
        project_id = path.split("/")[2]
        await asyncio.sleep(0)
        active["now"] -= 1
        events.append(("end", project_id))
        return {"id": "t"}

    fake_staffbase.on("POST", r"/tasks/[^/]+/lists", create_list)
    fake_staffbase.on("POST", r"/tasks/[^/]+/task", create_task)

    summary = await _engine(fake_staffbase, batch_size=5).fan_out(
        [str(i) for i in range(project_count)], [TaskSpecification(title="Only")], list_name="L"
    )

    assert summary.matched_projects == project_count
    assert summary.tasks_created == project_count
    assert active["peak"] <= 5

    order = [p.project_id for p in summary.outcomes]
    batches = [order[0:5], order[5:10], order[10:12]]
    position = {event: index for index, event in enumerate(events)}
    for earlier, later in zip(batches, batches[1:]):
        last_end = max(position[("end", p)] for p in earlier)
        first_start = min(position[("start", p)] for p in later)
        assert last_end < first_start


@pytest.mark.asyncio
async def test_fan_out_tolerates_single_project_failure(fake_staffbase, installation_factory):
    fake_staffbase.on(
        "GET",
        "/spaces/space-1/installations",
        {
            "data": [
                installation_factory("p-1", "Store 1", plugin_id="tasks"),
                installation_factory("p-2", "Store 2", plugin_id="tasks"),
                installation_factory("p-3", "Store 3", plugin_id="tasks"),
            ]
        },
    )
    fake_staffbase.on("POST", "/tasks/p-2/lists", StaffbaseAPIError("API 403: forbidden", status_code=403))
    fake_staffbase.on("POST", r"/tasks/p-[13]/lists", {"id": "list"})
    fake_staffbase.on("POST", r"/tasks/p-[13]/task", {"id": "task"})

    summary = await _engine(fake_staffbase).fan_out(["1", "2", "3"], TASKS, list_name="L")

    assert summary.matched_projects == 3
    assert summary.intended_tasks == 6
    assert summary.tasks_created == 4
    assert [o.project_id for o in summary.failed] == ["p-2"]
    assert "403" in summary.failed[0].error
