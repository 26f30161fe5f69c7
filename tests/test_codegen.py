"""End-to-end tests: bookstore document -> generated files."""

import json

import pytest

from clientgen.__main__ import main
from clientgen.codegen import generate
from clientgen.config import build_config
from clientgen.context_builder import build_context
from clientgen.loader import SchemaStore


def _generate(spec, out, **config):
    context = build_context(SchemaStore(spec), build_config(config))
    return generate(context, out)


@pytest.fixture
def output(bookstore_spec, tmp_path):
    out = tmp_path / "generated"
    _generate(bookstore_spec, out)
    return out


class TestGenerate:
    """Test the files written for the bookstore document."""

    def test_written_files(self, bookstore_spec, tmp_path):
        written = _generate(bookstore_spec, tmp_path)
        relative = sorted(str(p.relative_to(tmp_path)) for p in written)
        assert relative == [
            "admin/authors/author-form.controls.ts",
            "admin/books/book-form.controls.ts",
            "admin/helpers/custom-validators.ts",
            "admin/items/item-form.controls.ts",
            "admin/resources.json",
            "models/index.ts",
            "validators/authors.validator.ts",
            "validators/books.validator.ts",
            "validators/internal-ops.validator.ts",
            "validators/items.validator.ts",
            "validators/schemas.ts",
        ]

    def test_summary_line(self, bookstore_spec, tmp_path, capsys):
        _generate(bookstore_spec, tmp_path)
        assert "(6 models, 4 validator files, 3 resources)" in capsys.readouterr().out

    def test_models(self, output):
        text = (output / "models" / "index.ts").read_text()
        assert text.startswith("// Generated by clientgen from API version 1.2.0. Do not edit.\n")
        assert "/**\n * A book in the catalogue\n */\nexport interface Book {\n" in text
        assert "  readonly id?: number;\n" in text
        assert "  title: string;\n" in text
        assert "  genre?: Genre;\n" in text
        assert 'export type Genre = "fiction" | "nonfiction" | "poetry";\n' in text
        assert '  Nonfiction: "nonfiction",\n' in text

    def test_enum_style(self, bookstore_spec, tmp_path):
        _generate(bookstore_spec, tmp_path, enum_style="enum")
        text = (tmp_path / "models" / "index.ts").read_text()
        assert 'export enum Genre {\n  Fiction = "fiction",\n' in text

    def test_schemas(self, output):
        text = (output / "validators" / "schemas.ts").read_text()
        assert 'import { z } from "zod";\n' in text
        assert "export const TreeNodeSchema: z.ZodType<any> = z.object({\n" in text
        assert "z.lazy(() => TreeNodeSchema)" in text
        assert "  price: z.number().gt(0).optional(),\n" in text

    def test_operation_validators(self, output):
        text = (output / "validators" / "books.validator.ts").read_text()
        assert "// Validators for books\n" in text
        assert "  BookWriteSchema,\n" in text
        assert '} from "./schemas";\n' in text
        assert "/** POST /books */\nexport const createBookBody = BookWriteSchema;\n" in text
        assert "export const deleteBookParams = z.object({\n  bookId: z.number().int(),\n});\n" in text

    def test_book_form(self, output):
        text = (output / "admin" / "books" / "book-form.controls.ts").read_text()
        assert "export function createBookForm(): FormGroup {\n" in text
        assert (
            '    title: new FormControl("", [Validators.required, Validators.minLength(1), Validators.maxLength(200)]),\n'
            in text
        )
        assert "    author: new FormControl(null, [Validators.required]),\n" in text
        assert "    price: new FormControl(null, [CustomValidators.exclusiveMin(0)]),\n" in text
        assert "    tags: new FormControl(null, [CustomValidators.uniqueItems()]),\n" in text
        assert "    inStock: new FormControl(true),\n" in text
        assert '  { name: "id", label: "Id", kind: "integer", readOnly: true },\n' in text

    def test_polymorphic_form_is_wired(self, output):
        text = (output / "admin" / "items" / "item-form.controls.ts").read_text()
        assert 'wirePolymorphic(form.get("item") as FormGroup);' in text
        assert "function wirePolymorphic(group: FormGroup): void {" in text
        assert "      typeSelector: new FormControl(null, [Validators.required]),\n" in text

    def test_manifest(self, output):
        manifest = json.loads((output / "admin" / "resources.json").read_text())
        assert manifest["apiVersion"] == "1.2.0"
        assert manifest["auth"] == {"kind": "bearer", "scheme_name": "bearerAuth", "parameter_name": None}
        assert [r["name"] for r in manifest["resources"]] == ["book", "author", "item"]
        assert manifest["resources"][0]["actions"][0]["level"] == "item"

    def test_output_is_deterministic(self, bookstore_spec, tmp_path):
        first = _generate(bookstore_spec, tmp_path / "a")
        second = _generate(bookstore_spec, tmp_path / "b")
        assert [p.read_bytes() for p in first] == [p.read_bytes() for p in second]

    def test_no_admin(self, bookstore_spec, tmp_path):
        _generate(bookstore_spec, tmp_path, admin={"enabled": False})
        assert not (tmp_path / "admin").exists()
        assert (tmp_path / "models" / "index.ts").exists()


class TestMain:
    """Test the command-line entry point."""

    def test_success(self, bookstore_path, tmp_path):
        out = tmp_path / "out"
        assert main([str(bookstore_path), "-o", str(out), "--date-type", "Date"]) == 0
        assert "published?: Date;" in (out / "models" / "index.ts").read_text()

    def test_no_admin_flag(self, bookstore_path, tmp_path):
        assert main([str(bookstore_path), "-o", str(tmp_path), "--no-admin"]) == 0
        assert not (tmp_path / "admin").exists()

    def test_config_file(self, bookstore_path, tmp_path):
        config = tmp_path / "clientgen.yaml"
        config.write_text(f"input: {bookstore_path}\noutput: {tmp_path / 'cfg-out'}\n")
        assert main(["-c", str(config)]) == 0
        assert (tmp_path / "cfg-out" / "validators" / "schemas.ts").exists()

    def test_missing_document(self, tmp_path):
        assert main([str(tmp_path / "missing.json"), "-o", str(tmp_path)]) == 1

    def test_no_input(self):
        assert main([]) == 1

    def test_bad_config(self, tmp_path):
        config = tmp_path / "clientgen.yaml"
        config.write_text("unknown_key: 1\n")
        assert main(["-c", str(config)]) == 1


class TestFormArrayRowFactories:
    """Test row factories for form arrays holding polymorphic controls."""

    def test_row_factory_wires_polymorphic_controls(self, racks_spec, tmp_path):
        _generate(racks_spec, tmp_path)
        text = (tmp_path / "admin" / "racks" / "rack-form.controls.ts").read_text()
        assert "export function createRackSlotsRow(): FormGroup {\n  const row = new FormGroup({\n" in text
        assert '  wirePolymorphic(row.get("pet") as FormGroup);\n  return row;\n}\n' in text
        assert "function wirePolymorphic(group: FormGroup): void {" in text
        assert "wirePolymorphic(form.get(" not in text

    def test_nested_row_factory(self, racks_spec, tmp_path):
        _generate(racks_spec, tmp_path)
        text = (tmp_path / "admin" / "racks" / "rack-form.controls.ts").read_text()
        assert "export function createRackSlotsVisitsRow(): FormGroup {\n  return new FormGroup({\n" in text
        assert '    day: new FormControl(null),\n' in text
