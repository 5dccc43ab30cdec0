import argparse
import pathlib

from awacs import ec2, sts
from awacs.aws import Allow, PolicyDocument, Principal, Statement
from troposphere import GetAtt, Output, Parameter, Ref, Template
from troposphere.iam import InstanceProfile, PolicyType, Role


def template_to_json(template):
    return template.to_json(indent=None, sort_keys=True, separators=(",", ":"))


def create_template():
    template = Template(Description="Instance role for aws-ip-provisioner")

    role_path = template.add_parameter(Parameter("RolePath", Type="String", Default="/"))

    role = template.add_resource(
        Role(
            "Role",
            Path=Ref(role_path),
            AssumeRolePolicyDocument=PolicyDocument(
                Version="2012-10-17",
                Statement=[
                    Statement(
                        Effect=Allow,
                        Action=[sts.AssumeRole],
                        Principal=Principal("Service", "ec2.amazonaws.com"),
                    ),
                ],
            ),
        )
    )

    template.add_resource(
        PolicyType(
            "Policy",
            PolicyName=Ref(role),
            PolicyDocument=PolicyDocument(
                Version="2012-10-17",
                Statement=[
                    Statement(
                        Effect=Allow,
                        Action=[
                            ec2.DescribeInstances,
                            ec2.DescribeAddresses,
                            ec2.DescribeAvailabilityZones,
                        ],
                        Resource=["*"],
                    ),
                    # TODO scope AssociateAddress and CreateTags down to the Kind tag
                    Statement(
                        Effect=Allow,
                        Action=[
                            ec2.AllocateAddress,
                            ec2.AssociateAddress,
                            ec2.CreateTags,
                        ],
                        Resource=["*"],
                    ),
                ],
            ),
            Roles=[Ref(role)],
        )
    )

    instance_profile = template.add_resource(
        InstanceProfile(
            "InstanceProfile",
            Path=Ref(role_path),
            Roles=[Ref(role)],
        )
    )

    template.add_output(Output("RoleName", Value=Ref(role)))
    template.add_output(Output("InstanceProfileArn", Value=GetAtt(instance_profile, "Arn")))

    return template


def get_args(argv=None):
    parser = argparse.ArgumentParser()
    parser.add_argument(
        "--output", type=pathlib.Path, default=pathlib.Path(".") / "aws-ip-provisioner.json"
    )
    return parser.parse_args(argv)


def main(argv=None):
    args = get_args(argv)
    args.output.parent.mkdir(parents=True, exist_ok=True)
    with args.output.open("wb") as f:
        f.write(template_to_json(create_template()).encode("utf-8"))
