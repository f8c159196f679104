"""Unit tests for catalogue records, the HTTP client and the graph resolver."""

import unittest
from unittest.mock import MagicMock, patch

import requests

from catalogue.client import (
    CatalogueClient, CatalogueError, CatalogueResolver, ClientConfig, ConceptNotFoundError
)
from catalogue.schemas import ConceptRecord, ConceptStub, WorkSummary


CONCEPT_PAYLOAD = {
    'id': 'avkn7rq3',
    'label': 'Anatomy',
    'type': 'Concept',
    'description': 'The study of the structure of organisms.',
    'alternativeLabels': ['Human anatomy', ''],
    'relatedConcepts': {
        'relatedTo': [
            {'id': 'b1', 'label': 'Bones', 'conceptType': 'Concept'},
            {'id': 'p1', 'label': 'Vesalius', 'type': 'Person'},
        ],
        'broaderThan': [
            {'id': 'x1', 'label': 'No type'},
        ],
        'fieldsOfWork': 'not-a-list',
    },
}


def response(status_code=200, payload=None, json_error=False):
    mock = MagicMock()
    mock.status_code = status_code
    mock.ok = status_code < 400
    if json_error:
        mock.json.side_effect = ValueError("Expecting value")
    else:
        mock.json.return_value = payload
    return mock


class TestSchemas(unittest.TestCase):
    """Test cases for record parsing."""

    def test_stub_requires_id_label_and_type(self):
        self.assertEqual(ConceptStub.from_dict({'id': 'a', 'label': 'A', 'conceptType': 'Concept'}),
                         ConceptStub('a', 'A', 'Concept'))
        self.assertIsNone(ConceptStub.from_dict({'id': 'a', 'label': 'A'}))
        self.assertIsNone(ConceptStub.from_dict({'id': '  ', 'label': 'A', 'type': 'Concept'}))
        self.assertIsNone(ConceptStub.from_dict({'id': 7, 'label': 'A', 'type': 'Concept'}))
        self.assertIsNone(ConceptStub.from_dict(None))

    def test_concept_record(self):
        record = ConceptRecord.from_dict(CONCEPT_PAYLOAD)

        self.assertEqual(record.id, 'avkn7rq3')
        self.assertEqual(record.label, 'Anatomy')
        self.assertEqual(record.alternative_labels, ('Human anatomy',))
        self.assertNotIn('fieldsOfWork', record.related_concepts)

    def test_candidate_stubs_flatten_categories(self):
        stubs = ConceptRecord.from_dict(CONCEPT_PAYLOAD).candidate_stubs()
        self.assertEqual([s.id for s in stubs], ['b1', 'p1'])
        self.assertEqual(stubs[1].type, 'Person')

    def test_record_without_id(self):
        self.assertIsNone(ConceptRecord.from_dict({'label': 'Anatomy'}))
        self.assertIsNone(ConceptRecord.from_dict([]))

    def test_record_without_relations(self):
        record = ConceptRecord.from_dict({'id': 'a', 'label': 'A', 'relatedConcepts': None})
        self.assertEqual(record.candidate_stubs(), [])
        self.assertIsNone(record.description)

    def test_work_summary(self):
        work = WorkSummary.from_dict({
            'id': 'w1',
            'thumbnail': {'url': 'https://iiif.example/w1.jpg'},
            'contributors': [
                {'agent': {'label': 'Vesalius, Andreas'}, 'roles': ['author']},
                {'agent': {'label': 'Oporinus'}, 'roles': [{'label': 'printer'}]},
                {'agent': {'label': 'Anon'}},
                {'agent': {}},
            ],
        })

        self.assertEqual(work.title, 'Untitled')
        self.assertEqual(work.thumbnail_url, 'https://iiif.example/w1.jpg')
        self.assertEqual(work.contributors,
                         ('Vesalius, Andreas (author)', 'Oporinus (printer)', 'Anon'))
        self.assertIsNone(WorkSummary.from_dict({'title': 'No id'}))


class TestCatalogueClient(unittest.TestCase):
    """Test cases for CatalogueClient with requests mocked out."""

    def setUp(self):
        self.client = CatalogueClient(ClientConfig(base_url='https://catalogue.test/v2/'))

    @patch('catalogue.client.requests.get')
    def test_get_concept(self, mock_get):
        mock_get.return_value = response(payload=CONCEPT_PAYLOAD)
        record = self.client.get_concept('avkn7rq3')

        self.assertEqual(record.label, 'Anatomy')
        args, kwargs = mock_get.call_args
        self.assertEqual(args[0], 'https://catalogue.test/v2/concepts/avkn7rq3')
        self.assertEqual(kwargs['timeout'], self.client.config.timeout)
        self.assertIn('User-Agent', kwargs['headers'])

    @patch('catalogue.client.requests.get')
    def test_not_found(self, mock_get):
        mock_get.return_value = response(404)
        with self.assertRaises(ConceptNotFoundError) as ctx:
            self.client.get_concept('missing')
        self.assertEqual(ctx.exception.status_code, 404)

    @patch('catalogue.client.requests.get')
    def test_server_error(self, mock_get):
        mock_get.return_value = response(500)
        with self.assertRaises(CatalogueError) as ctx:
            self.client.get_concept('avkn7rq3')
        self.assertNotIsInstance(ctx.exception, ConceptNotFoundError)
        self.assertEqual(ctx.exception.status_code, 500)

    @patch('catalogue.client.requests.get')
    def test_network_error(self, mock_get):
        mock_get.side_effect = requests.ConnectionError("connection refused")
        with self.assertRaises(CatalogueError):
            self.client.get_concept('avkn7rq3')

    @patch('catalogue.client.requests.get')
    def test_malformed_body(self, mock_get):
        mock_get.return_value = response(json_error=True)
        with self.assertRaises(CatalogueError):
            self.client.get_concept('avkn7rq3')

        mock_get.return_value = response(payload={'label': 'no id'})
        with self.assertRaises(CatalogueError):
            self.client.get_concept('avkn7rq3')

    def test_empty_id_rejected(self):
        with self.assertRaises(ValueError):
            self.client.get_concept('')

    @patch('catalogue.client.requests.get')
    def test_related_works(self, mock_get):
        mock_get.return_value = response(payload={'results': [
            {'id': 'w1', 'title': 'De humani corporis fabrica'},
            {'title': 'dropped'},
        ]})
        works = self.client.get_related_works('avkn7rq3', page_size=5)

        self.assertEqual([w.id for w in works], ['w1'])
        _, kwargs = mock_get.call_args
        self.assertEqual(kwargs['params'], {'subjects': 'avkn7rq3', 'pageSize': 5})


class TestCatalogueResolver(unittest.IsolatedAsyncioTestCase):
    """Test cases for CatalogueResolver."""

    async def test_resolves_record(self):
        client = MagicMock()
        client.get_concept.return_value = ConceptRecord.from_dict(CONCEPT_PAYLOAD)
        record = await CatalogueResolver(client).resolve('avkn7rq3')

        self.assertEqual(record.id, 'avkn7rq3')
        client.get_concept.assert_called_once_with('avkn7rq3')

    async def test_failures_become_none(self):
        client = MagicMock()
        for error in (ConceptNotFoundError("gone", 404), CatalogueError("boom", 500)):
            client.get_concept.side_effect = error
            with self.assertLogs('catalogue.client', level='WARNING'):
                self.assertIsNone(await CatalogueResolver(client).resolve('x'))


if __name__ == '__main__':
    unittest.main()
