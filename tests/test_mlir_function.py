from __future__ import annotations

import importlib.util
import os
from pathlib import Path
import tempfile
import unittest
from unittest import mock

from fake_toolchain import FakeToolchain


JAX_AVAILABLE = importlib.util.find_spec("jax") is not None

ADD_F32 = """\
func.func @add(%a: tensor<f32>, %b: tensor<f32>) -> tensor<f32> {
  %0 = tosa.add %a, %b : (tensor<f32>, tensor<f32>) -> tensor<f32>
  return %0 : tensor<f32>
}
"""


@unittest.skipUnless(JAX_AVAILABLE, "jax is required for MLIR function tests")
class MLIRFunctionTests(unittest.TestCase):
    def setUp(self) -> None:
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        self.tmp = Path(tmp.name)
        self.fake = FakeToolchain(self.tmp)

    def _function(self, result_type, arg_types, source: str = ADD_F32, entry: str = "add", **kwargs):
        from iree_bridge.cache import CompilationCache
        from iree_bridge.function import MLIRFunction

        kwargs.setdefault("cache", CompilationCache())
        return MLIRFunction(result_type, arg_types, source, entry, toolchain=self.fake.toolchain(), **kwargs)

    def test_scalar_call_compiles_once_and_decodes_result(self) -> None:
        import numpy as np

        fn = self._function(np.float32, (np.float32, np.float32))
        with mock.patch.dict(os.environ, self.fake.env("EXEC @add\nresult[0]: f32=3.5\n")):
            out = fn(np.float32(1.5), np.float32(2.0))
            again = fn(np.float32(1.5), np.float32(2.0))

        self.assertIsInstance(out, np.float32)
        self.assertEqual(out, np.float32(3.5))
        self.assertEqual(again, out)
        self.assertEqual(len(self.fake.calls("compile")), 1)
        runs = self.fake.calls("run")
        self.assertEqual(len(runs), 2)
        self.assertIn("--entry_function=add", runs[0])
        self.assertEqual(
            [a for a in runs[0] if a.startswith("--function_input=")],
            ["--function_input=1.5", "--function_input=2.0"],
        )

    def test_inline_source_is_materialized_for_the_compiler(self) -> None:
        import numpy as np

        fn = self._function(np.float32, (np.float32, np.float32))
        with mock.patch.dict(os.environ, self.fake.env("result[0]: f32=0.0\n")):
            fn(np.float32(0), np.float32(0))
        (argv,) = self.fake.calls("compile")
        mlir = Path(argv[-1])
        self.assertEqual(mlir.suffix, ".mlir")
        module = Path(argv[argv.index("-o") + 1])
        self.assertEqual(module, fn.module_path())
        # the fake compiler copies its input into the module
        self.assertEqual(module.read_text(encoding="utf-8"), "vmfb:" + ADD_F32)

    def test_inline_source_file_is_removed_after_each_compilation(self) -> None:
        import numpy as np

        from iree_bridge.tempfiles import registered_temp_files

        fn = self._function(np.float32, (np.float32, np.float32))
        with mock.patch.dict(os.environ, self.fake.env("result[0]: f32=0.0\n")):
            fn(np.float32(0), np.float32(0))
            fn.invalidate()
            fn(np.float32(0), np.float32(0))
        sources = [Path(argv[-1]) for argv in self.fake.calls("compile")]
        self.assertEqual(len(sources), 2)
        for mlir in sources:
            self.assertFalse(mlir.exists())
            self.assertNotIn(mlir, registered_temp_files())
        self.assertIn(fn.module_path(), registered_temp_files())

    def test_invalidate_triggers_one_more_compilation(self) -> None:
        import numpy as np

        fn = self._function(np.float32, (np.float32, np.float32))
        with mock.patch.dict(os.environ, self.fake.env("result[0]: f32=1.0\n")):
            fn(np.float32(0), np.float32(1))
            fn(np.float32(0), np.float32(1))
            fn.invalidate()
            fn(np.float32(0), np.float32(1))
            fn(np.float32(0), np.float32(1))
        self.assertEqual(len(self.fake.calls("compile")), 2)

    def test_bindings_with_identical_source_share_a_module(self) -> None:
        import numpy as np

        from iree_bridge.cache import CompilationCache

        cache = CompilationCache()
        f32_add = self._function(np.float32, (np.float32, np.float32), cache=cache)
        f64_view = self._function(np.float32, (np.float64, np.float64), cache=cache)
        with mock.patch.dict(os.environ, self.fake.env("result[0]: f32=2.0\n")):
            f32_add(np.float32(1), np.float32(1))
            f64_view(1.0, 1.0)
        self.assertEqual(len(self.fake.calls("compile")), 1)
        self.assertEqual(len(cache), 1)

    def test_argument_mismatch_fails_before_any_subprocess(self) -> None:
        import numpy as np

        from iree_bridge.errors import ArgumentTypeMismatch

        fn = self._function(np.float32, (np.float32, np.float32))
        bad_calls = (
            (1.5, 2.0),
            (np.float32(1.5),),
            (np.float32(1.5), np.float32(2.0), np.float32(3.0)),
            (np.float32(1.5), [2.0]),
            (np.float32(1.5), np.array([2.0], dtype=np.float32)),
        )
        with mock.patch.dict(os.environ, self.fake.env("result[0]: f32=3.5\n")):
            for args in bad_calls:
                with self.subTest(args=args):
                    with self.assertRaises(ArgumentTypeMismatch) as ctx:
                        fn(*args)
                    self.assertEqual(len(ctx.exception.declared), 2)
                    self.assertIn("Argument types", str(ctx.exception))
        self.assertEqual(self.fake.calls(), [])

    def test_result_type_mismatch(self) -> None:
        import numpy as np

        from iree_bridge.errors import ResultTypeMismatch

        fn = self._function(np.float32, (np.float32, np.float32))
        with mock.patch.dict(os.environ, self.fake.env("result[0]: i32=3\n")):
            with self.assertRaises(ResultTypeMismatch) as ctx:
                fn(np.float32(1), np.float32(2))
        self.assertIn("i32", str(ctx.exception))

    def test_result_arity_must_be_one(self) -> None:
        import numpy as np

        from iree_bridge.errors import ResultArityError

        fn = self._function(np.float32, (np.float32, np.float32))
        for output, count in (("EXEC @add\n", 0), ("result[0]: f32=1.0\nresult[1]: f32=2.0\n", 2)):
            with self.subTest(count=count):
                with mock.patch.dict(os.environ, self.fake.env(output)):
                    with self.assertRaises(ResultArityError) as ctx:
                        fn(np.float32(1), np.float32(2))
                self.assertEqual(ctx.exception.count, count)

    def test_vector_arguments_and_buffer_view_result(self) -> None:
        import jax.numpy as jnp
        import numpy as np

        from iree_bridge.dtypes import array_of

        fn = self._function(array_of(np.float32), (array_of(np.float32),), entry="double")
        output = "EXEC @double\nresult[0]: hal.buffer_view\n4xf32=[2.0 4.0 6.0 8.0]\n"
        with mock.patch.dict(os.environ, self.fake.env(output)):
            out = fn(jnp.asarray([1.0, 2.0, 3.0, 4.0], dtype=jnp.float32))
        self.assertEqual(out.dtype, np.float32)
        self.assertEqual(out.tolist(), [2.0, 4.0, 6.0, 8.0])
        (argv,) = self.fake.calls("run")
        self.assertIn("--function_input=4xf32=[1.0 2.0 3.0 4.0]", argv)

    def test_bool_declared_result_decodes_i8_as_bool(self) -> None:
        import numpy as np

        fn = self._function(bool, (np.int32, np.int32), entry="less")
        with mock.patch.dict(os.environ, self.fake.env("result[0]: i8=1\n")):
            out = fn(np.int32(1), np.int32(2))
        self.assertIsInstance(out, np.bool_)
        self.assertTrue(out)

        as_int = self._function(np.int8, (np.int32, np.int32), entry="less")
        with mock.patch.dict(os.environ, self.fake.env("result[0]: i8=1\n")):
            self.assertIsInstance(as_int(np.int32(1), np.int32(2)), np.int8)

    def test_file_source_binding(self) -> None:
        import numpy as np

        src = self.tmp / "add.mlir"
        src.write_text(ADD_F32, encoding="utf-8")
        fn = self._function(np.float32, (np.float32, np.float32), source=str(src), is_file=True)
        with mock.patch.dict(os.environ, self.fake.env("result[0]: f32=5.0\n")):
            self.assertEqual(fn(np.float32(2), np.float32(3)), np.float32(5.0))
        (argv,) = self.fake.calls("compile")
        self.assertEqual(argv[-1], str(src))
        self.assertIn(f"data=<{src}>", repr(fn))

    def test_failed_compilation_leaves_cache_empty(self) -> None:
        import numpy as np

        from iree_bridge.errors import SubprocessFailure

        fn = self._function(np.float32, (np.float32, np.float32))
        with mock.patch.dict(os.environ, self.fake.env("result[0]: f32=1.0\n", FAKE_IREE_COMPILE_FAIL="1")):
            with self.assertRaises(SubprocessFailure):
                fn(np.float32(0), np.float32(1))
        self.assertEqual(len(fn.cache), 0)
        self.assertEqual(self.fake.calls("run"), [])

        with mock.patch.dict(os.environ, self.fake.env("result[0]: f32=1.0\n")):
            self.assertEqual(fn(np.float32(0), np.float32(1)), np.float32(1.0))
        self.assertEqual(len(fn.cache), 1)

    def test_unconfigured_toolchain_is_reported_on_call(self) -> None:
        import numpy as np

        from iree_bridge.cache import CompilationCache
        from iree_bridge.config import Toolchain
        from iree_bridge.errors import ConfigurationError
        from iree_bridge.function import MLIRFunction

        fn = MLIRFunction(np.float32, (np.float32,), ADD_F32, "add", cache=CompilationCache(), toolchain=Toolchain(root=None))
        with self.assertRaises(ConfigurationError):
            fn(np.float32(1))
        self.assertEqual(len(fn.cache), 0)

    def test_declared_types_are_normalized_and_shown(self) -> None:
        import numpy as np

        from iree_bridge.dtypes import FLOAT32, INT64, array_of

        fn = self._function(np.float32, (np.float32, int, array_of(np.float32)))
        self.assertEqual(fn.result_type, FLOAT32)
        self.assertEqual(fn.arg_types[1], INT64)
        self.assertEqual(repr(fn), "MLIRFunction(f32, (f32, i64, ?xf32), entry=add)")

        single = self._function(np.float32, np.float32)
        self.assertEqual(single.arg_types, (FLOAT32,))


if __name__ == "__main__":
    unittest.main()
