"""Per task type behaviors, one coroutine per TaskType."""
