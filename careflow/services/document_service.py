"""
Document Service
================

Service for ingesting clinical documents into the knowledge base.

This service handles:
- Loading documents from files (txt, md, pdf)
- Splitting documents into chunks
- Embedding and indexing each chunk through the RAG service

WHY A SEPARATE SERVICE?
- Separates ingestion from query processing
- Can be run as a batch job
- Easy to add new document types

CHUNKING:
Long documents are split with RecursiveCharacterTextSplitter, which
tries paragraph, line, sentence and word boundaries in turn. Each chunk
becomes its own KnowledgeDocument with id "<document-id>-<chunk-index>".
"""

import logging
import uuid
from pathlib import Path
from typing import Optional

from langchain_community.document_loaders import PyPDFLoader, TextLoader
from langchain_text_splitters import RecursiveCharacterTextSplitter

from careflow.config import get_settings
from careflow.errors import ValidationError
from careflow.schemas.models import IngestionResult, KnowledgeDocument
from careflow.services.rag_service import RAGQueryService

logger = logging.getLogger(__name__)


class DocumentService:
    """
    Service for document ingestion.

    Usage:
        service = DocumentService(rag_service)
        result = await service.ingest_file("guidelines/diabetes.pdf")
        result.chunk_count
    """

    # Supported file extensions and their loaders
    SUPPORTED_EXTENSIONS = {
        ".txt": TextLoader,
        ".md": TextLoader,
        ".pdf": PyPDFLoader,
    }

    def __init__(
        self,
        rag_service: RAGQueryService,
        chunk_size: Optional[int] = None,
        chunk_overlap: Optional[int] = None,
    ):
        """
        Initialize the document service.

        Args:
            rag_service: Indexes each chunk (embedding + index + store)
            chunk_size: Override settings chunk size
            chunk_overlap: Override settings chunk overlap
        """
        settings = get_settings()
        self._rag_service = rag_service

        # Text splitter for chunking documents
        # Splits on paragraphs, then sentences, then words
        self._splitter = RecursiveCharacterTextSplitter(
            chunk_size=chunk_size or settings.chunk_size,
            chunk_overlap=chunk_overlap if chunk_overlap is not None else settings.chunk_overlap,
            length_function=len,
            separators=["\n\n", "\n", ". ", " ", ""],
        )

    async def ingest_text(
        self,
        text: str,
        source: str = "direct_input",
        title: str = "",
        document_type: str = "clinical",
        keywords: Optional[list[str]] = None,
        document_id: Optional[str] = None,
    ) -> IngestionResult:
        """
        Chunk, embed and index raw text.

        Args:
            text: Text content to ingest
            source: Where the text came from
            title: Human-readable title
            document_type: guideline, research or clinical
            keywords: Search keywords stored with every chunk
            document_id: Stable id (re-ingesting the same id replaces all of its chunks)

        Returns:
            IngestionResult with the chunk ids

        Raises:
            ValidationError: If the text is empty
            ExternalServiceError: If embedding fails
        """
        if not text or not text.strip():
            raise ValidationError("Cannot ingest empty text")

        document_id = document_id or str(uuid.uuid4())
        chunks = self._splitter.split_text(text)

        chunk_ids = []
        for i, chunk in enumerate(chunks):
            chunk_id = f"{document_id}-{i}"
            await self._rag_service.index_document(
                KnowledgeDocument(
                    id=chunk_id,
                    title=title,
                    content=chunk,
                    source=source,
                    keywords=keywords or [],
                    document_type=document_type,
                )
            )
            chunk_ids.append(chunk_id)

        # Chunks past the new count belong to an earlier version of this document
        stale = len(chunk_ids)
        while self._rag_service.remove_document(f"{document_id}-{stale}"):
            stale += 1
        if stale > len(chunk_ids):
            logger.info(f"Removed {stale - len(chunk_ids)} stale chunks of {document_id}")

        logger.info(f"Ingested {title or source}: {len(chunk_ids)} chunks")

        return IngestionResult(
            document_id=document_id,
            source=source,
            chunk_count=len(chunk_ids),
            chunk_ids=chunk_ids,
        )

    async def ingest_file(
        self,
        file_path: str,
        document_type: str = "clinical",
        keywords: Optional[list[str]] = None,
    ) -> IngestionResult:
        """
        Ingest a single file.

        The file path is used as the source and the stem as the title.

        Raises:
            FileNotFoundError: If the file doesn't exist
            ValidationError: If the file type is not supported
        """
        path = Path(file_path)

        if not path.exists():
            raise FileNotFoundError(f"File not found: {file_path}")

        extension = path.suffix.lower()

        if extension not in self.SUPPORTED_EXTENSIONS:
            raise ValidationError(
                f"Unsupported file type: {extension}. "
                f"Supported: {list(self.SUPPORTED_EXTENSIONS.keys())}"
            )

        # Load the document (PDFs come back one Document per page)
        loader_class = self.SUPPORTED_EXTENSIONS[extension]
        if loader_class is TextLoader:
            loader = TextLoader(str(path), encoding="utf-8")
        else:
            loader = loader_class(str(path))
        pages = loader.load()

        text = "\n\n".join(page.page_content for page in pages)

        return await self.ingest_text(
            text,
            source=str(path),
            title=path.stem,
            document_type=document_type,
            keywords=keywords,
            document_id=path.stem,
        )

    async def ingest_directory(self, directory_path: str) -> list[IngestionResult]:
        """
        Ingest every supported file in a directory (recursively).

        Files that fail are logged and skipped.
        """
        path = Path(directory_path)
        if not path.is_dir():
            raise FileNotFoundError(f"Directory not found: {directory_path}")

        files = sorted(
            f for f in path.rglob("*")
            if f.is_file() and f.suffix.lower() in self.SUPPORTED_EXTENSIONS
        )

        results = []
        for file in files:
            try:
                results.append(await self.ingest_file(str(file)))
            except Exception as e:
                logger.error(f"Failed to process {file}: {e}")

        logger.info(f"Ingested {len(results)}/{len(files)} files from {directory_path}")
        return results
