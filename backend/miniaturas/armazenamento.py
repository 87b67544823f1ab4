import json
import logging
import os
import re
import secrets
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

ID_REGEX = re.compile(r'^[0-9a-f]{24}$')

Registro = Dict[str, object]


def novo_id() -> str:
    return secrets.token_hex(12)


def id_valido(valor) -> bool:
    return isinstance(valor, str) and bool(ID_REGEX.match(valor))


def agora() -> str:
    return datetime.now(timezone.utc).isoformat()


def mais_recentes_primeiro(registros: List[Registro]) -> List[Registro]:
    # sort estável sobre a lista invertida: empates ficam com o último inserido na frente
    return sorted(reversed(registros), key=lambda r: r.get("created_at", ""), reverse=True)


class Colecao:
    """Coleção de registros persistida em um arquivo JSON (lista de objetos)."""

    def __init__(self, caminho: Path):
        self.caminho = Path(caminho)
        self._lock = threading.RLock()

    def ler(self) -> List[Registro]:
        with self._lock:
            if not self.caminho.exists():
                self.caminho.parent.mkdir(parents=True, exist_ok=True)
                with open(self.caminho, 'w') as file:
                    json.dump([], file)
                logger.info(f"Arquivo {self.caminho} criado com coleção vazia.")
                return []
            with open(self.caminho, 'r') as file:
                try:
                    return json.load(file)
                except json.JSONDecodeError:
                    logger.error(f"Erro ao decodificar JSON no arquivo {self.caminho}. Retornando coleção vazia.")
                    return []

    def salvar(self, registros: List[Registro]):
        with self._lock:
            self.caminho.parent.mkdir(parents=True, exist_ok=True)
            temporario = self.caminho.with_suffix('.tmp')
            with open(temporario, 'w') as file:
                json.dump(registros, file, indent=4, ensure_ascii=False)
            os.replace(temporario, self.caminho)
            logger.debug(f"{len(registros)} registros salvos em {self.caminho}.")

    def buscar(self, id: str) -> Optional[Registro]:
        return self.primeiro(lambda r: r.get("id") == id)

    def primeiro(self, predicado: Callable[[Registro], bool]) -> Optional[Registro]:
        return next((r for r in self.ler() if predicado(r)), None)

    def filtrar(self, predicado: Callable[[Registro], bool]) -> List[Registro]:
        return [r for r in self.ler() if predicado(r)]

    def inserir(self, dados: Registro) -> Registro:
        with self._lock:
            registros = self.ler()
            momento = agora()
            registro = {"id": novo_id(), **dados, "created_at": momento, "updated_at": momento}
            registros.append(registro)
            self.salvar(registros)
            return registro

    def atualizar(self, registro: Registro) -> Registro:
        with self._lock:
            registros = self.ler()
            for indice, existente in enumerate(registros):
                if existente["id"] == registro["id"]:
                    registro["updated_at"] = agora()
                    registros[indice] = registro
                    self.salvar(registros)
                    return registro
            raise KeyError(registro["id"])

    def remover(self, id: str) -> bool:
        with self._lock:
            registros = self.ler()
            restantes = [r for r in registros if r.get("id") != id]
            if len(restantes) == len(registros):
                return False
            self.salvar(restantes)
            return True

    def remover_onde(self, predicado: Callable[[Registro], bool]) -> int:
        with self._lock:
            registros = self.ler()
            restantes = [r for r in registros if not predicado(r)]
            if len(restantes) != len(registros):
                self.salvar(restantes)
            return len(registros) - len(restantes)


class Banco:
    """Agrupa as coleções da loja em um diretório de dados."""

    def __init__(self, data_dir: Path):
        self.data_dir = Path(data_dir)
        self.usuarios = Colecao(self.data_dir / "usuarios.json")
        self.produtos = Colecao(self.data_dir / "produtos.json")
        self.categorias = Colecao(self.data_dir / "categorias.json")
        self.carrinho = Colecao(self.data_dir / "carrinho.json")
        self.pedidos = Colecao(self.data_dir / "pedidos.json")
        # operações que leem e gravam estoque e pedidos juntos
        self.transacao = threading.RLock()
