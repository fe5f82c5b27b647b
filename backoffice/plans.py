# backoffice/plans.py
# Persist a generated plan and the tasks the user picked from it.

from __future__ import annotations

import json
import uuid
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from backoffice.ai_contracts import validate_plan_form
from backoffice.errors import InvalidInput
from backoffice.models import Plan, PlanTask, TodoTask


def save_plan(
    db: Session,
    user_id: uuid.UUID,
    form: dict,
    plan: dict,
    selected_task_indexes: Optional[Iterable[int]] = None,
) -> Plan:
    """
    Stores the plan as a draft. Selected tasks keep their index in the
    generated list as order_index and are mirrored into the todo list.
    Defaults to all tasks when no selection is given.
    """
    validate_plan_form(form)
    tasks = plan.get("tasks") or []
    if not isinstance(tasks, list) or not all(isinstance(t, dict) for t in tasks):
        raise InvalidInput("Plan tasks must be a list of objects")

    if selected_task_indexes is None:
        indexes = list(range(len(tasks)))
    else:
        indexes = sorted(set(selected_task_indexes))
    bad = [i for i in indexes if i < 0 or i >= len(tasks)]
    if bad:
        raise InvalidInput(f"Unknown task index(es): {bad}")

    row = Plan(
        user_id=user_id,
        title=form["title"],
        description=form.get("description"),
        fields_data=json.dumps(form),
        ai_generated_plan=json.dumps(plan),
        status="draft",
    )
    db.add(row)
    db.flush()

    for i in indexes:
        task = tasks[i]
        title = task.get("title") or f"Task {i + 1}"
        db.add(PlanTask(
            plan_id=row.id,
            title=title,
            description=task.get("description"),
            order_index=i,
            completed=False,
        ))
        db.add(TodoTask(
            user_id=user_id,
            title=title,
            description=task.get("description"),
            completed=False,
        ))

    db.commit()
    db.refresh(row)
    return row
