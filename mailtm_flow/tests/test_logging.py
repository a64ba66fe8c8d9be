"""Testes do logger com API em português."""

from __future__ import annotations

import io
import tempfile
import unittest
from pathlib import Path

from rich.console import Console

from mailtm_flow.core.logging import LoggerConfig, MailFlowLogger


def make_logger(**config) -> tuple[MailFlowLogger, io.StringIO]:
    buffer = io.StringIO()
    console = Console(file=buffer, no_color=True, width=200)
    return MailFlowLogger(LoggerConfig(mostrar_tempo=False, **config), console=console), buffer


class MailFlowLoggerTests(unittest.TestCase):
    def test_levels_and_minimum(self) -> None:
        logger, buffer = make_logger(nivel_minimo="WARNING")

        logger.info("escondido")
        logger.aviso("atenção", message_id="m1")
        logger.erro("falhou")

        saida = buffer.getvalue()
        self.assertNotIn("escondido", saida)
        self.assertIn("[AVISO]", saida)
        self.assertIn("message_id=m1", saida)
        self.assertIn("falhou", saida)

    def test_scoped_context(self) -> None:
        logger, buffer = make_logger()

        logger.com_contexto(servico="TriggerLoop").sucesso("Lote emitido", emitidas=2)

        saida = buffer.getvalue()
        self.assertIn("servico=TriggerLoop", saida)
        self.assertIn("emitidas=2", saida)

    def test_etapa_logs_failure_and_reraises(self) -> None:
        logger, buffer = make_logger()

        with self.assertRaises(RuntimeError):
            with logger.etapa("Exclusão"):
                raise RuntimeError("boom")

        self.assertIn("Exclusão", buffer.getvalue())
        self.assertIn("[ERRO]", buffer.getvalue())

    def test_file_mirror(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "logs" / "mailtm.log"
            logger, _ = make_logger(arquivo_log=str(path))

            logger.info("gravado", chave="valor")
            logger.close()

            conteudo = path.read_text(encoding="utf-8")
        self.assertIn("INFO | gravado", conteudo)
        self.assertIn("dados=chave=valor", conteudo)

    def test_invalid_level_rejected(self) -> None:
        with self.assertRaises(ValueError):
            LoggerConfig(nivel_minimo="VERBOSE").validate()


if __name__ == "__main__":
    unittest.main()
