import base64
from pathlib import Path
import sys

import pytest
import requests
from lxml import etree

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from app.sunat_client.exceptions import TransportException  # noqa: E402
from app.sunat_client.soap_client import (  # noqa: E402
    SUNAT_SERVICE_NS,
    SunatSoapClient,
    build_soap_envelope,
    parse_soap_response,
)

URL = "https://e-beta.sunat.gob.pe/ol-ti-itcpfegem-beta/billService"


def _envelope(body: str) -> bytes:
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<soap-env:Envelope xmlns:soap-env="http://schemas.xmlsoap.org/soap/envelope/">'
        f"<soap-env:Body>{body}</soap-env:Body>"
        "</soap-env:Envelope>"
    ).encode("utf-8")


FAULT = _envelope(
    "<soap-env:Fault>"
    "<faultcode>soap-env:Client.0111</faultcode>"
    "<faultstring>No tiene el perfil para enviar comprobantes electronicos</faultstring>"
    "</soap-env:Fault>"
)


class _MockResponse:
    def __init__(self, *, status_code: int, content: bytes):
        self.status_code = status_code
        self.content = content
        self.text = content.decode("utf-8", "replace")


class _MockSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def post(self, url, data=None, headers=None, timeout=None):
        self.calls.append({"url": url, "data": data, "headers": headers, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.response

    def close(self):
        pass


def test_envelope_carries_username_token_and_unqualified_fields():
    soap = build_soap_envelope("20123456786MODDATOS", "moddatos", "sendBill", [
        ("fileName", "20123456786-01-F001-00000001.zip"),
        ("contentFile", "UEsDBA=="),
    ])
    root = etree.fromstring(soap)

    assert root.xpath('string(//*[local-name()="Username"])') == "20123456786MODDATOS"
    assert root.xpath('string(//*[local-name()="Password"])') == "moddatos"

    operation = root.xpath('//*[local-name()="sendBill"]')[0]
    assert etree.QName(operation).namespace == SUNAT_SERVICE_NS
    assert [child.tag for child in operation] == ["fileName", "contentFile"]


def test_parse_send_bill_response():
    resp = parse_soap_response(_envelope(
        '<br:sendBillResponse xmlns:br="http://service.sunat.gob.pe">'
        "<applicationResponse>UEsDBBQ=</applicationResponse>"
        "</br:sendBillResponse>"
    ))
    assert resp.application_response == "UEsDBBQ="
    assert resp.ticket is None


def test_parse_get_status_cdr_content_is_normalized():
    resp = parse_soap_response(_envelope(
        "<ns2:getStatusCdrResponse xmlns:ns2=\"http://service.sunat.gob.pe\"><statusCdr>"
        "<content>UEsDBAo=</content><statusCode>0004</statusCode>"
        "<statusMessage>La constancia existe</statusMessage>"
        "</statusCdr></ns2:getStatusCdrResponse>"
    ))
    assert resp.application_response == "UEsDBAo="
    assert resp.status_code == "0004"


def test_fault_raises_transport_exception_with_number():
    with pytest.raises(TransportException) as exc:
        parse_soap_response(FAULT)
    assert exc.value.code == "0111"
    assert exc.value.fault_code == "soap-env:Client.0111"
    assert "perfil" in exc.value.message


def test_non_xml_response_is_invalid():
    with pytest.raises(TransportException) as exc:
        parse_soap_response(b"<html>Bad gateway")
    assert exc.value.code == "INVALID_RESPONSE"


def test_send_bill_posts_base64_zip_with_soap_action():
    ok = _envelope('<br:sendBillResponse xmlns:br="http://service.sunat.gob.pe">'
                   "<applicationResponse>QUJD</applicationResponse></br:sendBillResponse>")
    session = _MockSession(response=_MockResponse(status_code=200, content=ok))
    client = SunatSoapClient("20123456786", "MODDATOS", "moddatos", timeout=12, session=session)

    resp = client.send_bill(URL, "20123456786-01-F001-00000001", b"PK\x03\x04zip")

    assert resp.application_response == "QUJD"
    call = session.calls[0]
    assert call["url"] == URL
    assert call["timeout"] == 12
    assert call["headers"]["SOAPAction"] == "urn:sendBill"
    sent = etree.fromstring(call["data"])
    assert sent.xpath('string(//fileName)') == "20123456786-01-F001-00000001.zip"
    assert base64.b64decode(sent.xpath('string(//contentFile)')) == b"PK\x03\x04zip"


def test_http_500_with_fault_raises_fault_code():
    session = _MockSession(response=_MockResponse(status_code=500, content=FAULT))
    client = SunatSoapClient("20123456786", "MODDATOS", "moddatos", session=session)
    with pytest.raises(TransportException) as exc:
        client.get_status(URL, "1737000000000")
    assert exc.value.code == "0111"


def test_http_error_without_fault():
    session = _MockSession(response=_MockResponse(status_code=503, content=b"Service Unavailable"))
    client = SunatSoapClient("20123456786", "MODDATOS", "moddatos", session=session)
    with pytest.raises(TransportException) as exc:
        client.get_status(URL, "1737000000000")
    assert exc.value.code == "HTTP_503"
    assert exc.value.http_status == 503


@pytest.mark.parametrize(
    "error, code",
    [
        (requests.exceptions.ReadTimeout("read timed out"), "TIMEOUT"),
        (requests.exceptions.ConnectionError("refused"), "CONNECTION_ERROR"),
    ],
)
def test_network_errors_are_classified(error, code):
    client = SunatSoapClient("20123456786", "MODDATOS", "moddatos", session=_MockSession(error=error))
    with pytest.raises(TransportException) as exc:
        client.send_summary(URL, "20123456786-RC-20250115-00001", b"PK")
    assert exc.value.code == code
