import unittest

from vqgrid.preview.models import (
    OperationDescriptor,
    OperationKind,
    SqlAndParams,
)


class TestOperationDescriptor(unittest.TestCase):
    def test_from_planner_output(self):
        op = OperationDescriptor.from_dict(
            {
                "op": "update",
                "table": "tasks",
                "pk_cols": ["path", "line_number"],
                "before": [{"path": "/a.md", "status": "todo"}],
                "after": [{"path": "/a.md", "status": "done"}],
                "sql_to_apply": [
                    {"sql": "UPDATE tasks SET status = ?", "params": ["done"]}
                ],
                "ids": [["/a.md", 3]],
                "rowids": [7],
                "warnings": ["Rows matched by text"],
            }
        )
        self.assertEqual(op.kind, OperationKind.UPDATE)
        self.assertEqual(op.table, "tasks")
        self.assertEqual(op.pk_cols, ("path", "line_number"))
        self.assertEqual(op.after[0]["status"], "done")
        self.assertEqual(
            op.sql_to_apply,
            (SqlAndParams("UPDATE tasks SET status = ?", ("done",)),),
        )
        self.assertEqual(op.ids, (("/a.md", 3),))
        self.assertEqual(op.rowids, (7,))
        self.assertEqual(op.warnings, ("Rows matched by text",))
        self.assertEqual(op.row_count, 1)

    def test_camel_case_keys(self):
        op = OperationDescriptor.from_dict(
            {
                "kind": "multi",
                "multiResults": [
                    {
                        "op": "delete",
                        "table": "notes",
                        "pkCols": ["id"],
                        "before": [{"id": 1}],
                        "sqlToApply": ["DELETE FROM notes WHERE id = 1"],
                    }
                ],
            }
        )
        self.assertEqual(op.kind, OperationKind.MULTI)
        (nested,) = op.nested
        self.assertEqual(nested.pk_cols, ("id",))
        self.assertEqual(nested.sql_to_apply[0].params, ())

    def test_rows_are_read_only(self):
        op = OperationDescriptor(kind="insert", after=[{"a": 1}])
        with self.assertRaises(TypeError):
            op.after[0]["a"] = 2  # type: ignore[index]

    def test_source_rows_are_copied(self):
        row = {"a": 1}
        op = OperationDescriptor(kind="insert", after=[row])
        row["a"] = 2
        self.assertEqual(op.after[0]["a"], 1)

    def test_unknown_kind(self):
        with self.assertRaises(ValueError):
            OperationDescriptor.from_dict({"op": "merge"})

    def test_statements_of_multi_are_flattened(self):
        op = OperationDescriptor.from_dict(
            {
                "op": "multi",
                "sql_to_apply": ["ignored"],
                "multi_results": [
                    {"op": "insert", "sql_to_apply": ["INSERT 1"]},
                    {"op": "delete", "sql_to_apply": ["DELETE 1", "DELETE 2"]},
                ],
            }
        )
        self.assertEqual(
            [s.sql for s in op.statements()],
            ["INSERT 1", "DELETE 1", "DELETE 2"],
        )

    def test_total_row_count(self):
        op = OperationDescriptor.from_dict(
            {
                "op": "multi",
                "multi_results": [
                    {"op": "insert", "after": [{"a": 1}, {"a": 2}]},
                    {"op": "update", "before": [{"a": 1}], "after": []},
                ],
            }
        )
        self.assertEqual(op.total_row_count, 3)
        self.assertEqual(op.row_count, 0)

    def test_from_dict_passes_descriptors_through(self):
        op = OperationDescriptor(kind="delete")
        self.assertIs(OperationDescriptor.from_dict(op), op)
        statement = SqlAndParams("x")
        self.assertIs(SqlAndParams.from_dict(statement), statement)
